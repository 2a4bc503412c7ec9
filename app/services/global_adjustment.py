from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from app.core.errors import ValidationError
from app.core.utils import ZERO, to_decimal
from app.models.settlement import ACCEPTED
from app.models.user import SETTLEMENT_MODES

SEPARATE = "separate"
AUTO_ADJUST = "auto_adjust"
HYBRID = "hybrid"


@dataclass(frozen=True)
class AdjustedBalance:
    net: Decimal
    original_net: Decimal
    global_adjustment: Decimal


def global_adjustment_for(user_id: int, global_settlements: Iterable) -> Decimal:
    adjustment = ZERO
    for gs in global_settlements:
        if gs.status != ACCEPTED:
            continue
        if gs.from_user_id == user_id:
            adjustment -= to_decimal(gs.amount)
        elif gs.to_user_id == user_id:
            adjustment += to_decimal(gs.amount)
    return adjustment


def apply_global_adjustment(user_id: int, original_net: Decimal, mode: str, global_settlements: Iterable) -> AdjustedBalance:
    """Fold cross-group settlements into one group balance view.

    separate    -- no effect
    auto_adjust -- adjustment is added to the net
    hybrid      -- net untouched, adjustment reported alongside for display
    """
    if mode not in SETTLEMENT_MODES:
        raise ValidationError(f"Unknown settlement mode '{mode}'")

    original_net = to_decimal(original_net)

    if mode == SEPARATE:
        return AdjustedBalance(net=original_net, original_net=original_net, global_adjustment=ZERO)

    adjustment = global_adjustment_for(user_id, global_settlements)

    if mode == AUTO_ADJUST:
        return AdjustedBalance(
            net=original_net + adjustment,
            original_net=original_net,
            global_adjustment=adjustment,
        )

    return AdjustedBalance(net=original_net, original_net=original_net, global_adjustment=adjustment)
