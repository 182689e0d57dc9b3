"""Validation logic for roster candidates and switch-cost breakdowns."""

from yield_optimizer.fee_model import cost_components
from yield_optimizer.models import StrategyCandidate, SwitchCostBreakdown

# APYs outside this band (percent) are treated as provider errors.
MIN_PLAUSIBLE_APY = -100
MAX_PLAUSIBLE_APY = 1000


def validate_candidate(c: StrategyCandidate, *, warn_only: bool = False) -> list[str]:
    """
    Validate a roster candidate.

    Returns list of validation warnings/errors. If warn_only=False, raises ValueError on the first issue.
    """
    issues: list[str] = []

    # 1. Name is required for the reasoning trail and reports
    if not c.name.strip():
        msg = f"Candidate {c.id}: empty name"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    # 2. APY must be finite and plausible
    if not c.gross_apy.is_finite():
        msg = f"Candidate {c.id}: non-finite grossApy: {c.gross_apy}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)
    elif not MIN_PLAUSIBLE_APY <= c.gross_apy <= MAX_PLAUSIBLE_APY:
        msg = f"Candidate {c.id}: implausible grossApy: {c.gross_apy}% (expected {MIN_PLAUSIBLE_APY}..{MAX_PLAUSIBLE_APY})"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    return issues


def validate_switch_cost(b: SwitchCostBreakdown, *, warn_only: bool = False) -> list[str]:
    """
    Validate switch-cost invariants: non-negative components that sum exactly to the total.

    Returns list of validation warnings/errors. If warn_only=False, raises ValueError on the first issue.
    """
    issues: list[str] = []
    components = cost_components(b)

    for name, value in components.items():
        if value < 0:
            msg = f"Switch cost: negative {name}: {value}"
            issues.append(msg)
            if not warn_only:
                raise ValueError(msg)

    expected_total = sum(components.values())
    if b.total_cost != expected_total:
        msg = f"Switch cost: total {b.total_cost} != sum of components {expected_total}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    if b.transaction_count < 0:
        msg = f"Switch cost: negative transaction count: {b.transaction_count}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    if b.total_cost_in_reference < 0:
        msg = f"Switch cost: negative reference-currency total: {b.total_cost_in_reference}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    return issues
