import logging
from decimal import Decimal, ROUND_DOWN
from typing import List, Tuple

from app.core.dependencies import check_group_membership, ensure_group_member
from app.core.errors import Forbidden, NotFound, ValidationError
from app.core.utils import CENTS, TOLERANCE, ZERO, qround, to_decimal
from app.schemas.expense import ExpenseCreate, ExpenseUpdate
from app.store.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def equal_splits(amount: Decimal, user_ids: List[int]) -> List[Tuple[int, Decimal]]:
    """Divide ``amount`` evenly, handing leftover cents to the first users."""
    if not user_ids:
        raise ValidationError("Cannot split an expense between zero members")

    amount = qround(amount)
    ordered = sorted(user_ids)
    base = (amount / len(ordered)).quantize(CENTS, rounding=ROUND_DOWN)
    leftover_cents = int((amount - base * len(ordered)) / CENTS)

    return [
        (uid, base + (CENTS if i < leftover_cents else ZERO))
        for i, uid in enumerate(ordered)
    ]


def validate_splits(amount: Decimal, splits: List[Tuple[int, Decimal]], member_ids):
    user_ids = [uid for uid, _ in splits]

    if not splits:
        raise ValidationError("At least one split is required")

    if len(user_ids) != len(set(user_ids)):
        raise ValidationError("Duplicate users found in splits")

    if any(share < ZERO for _, share in splits):
        raise ValidationError("Split amounts cannot be negative")

    if not set(user_ids) <= set(member_ids):
        raise ValidationError("One or more users in splits are not members of the group")

    total = sum((share for _, share in splits), ZERO)
    if abs(total - amount) > TOLERANCE:
        raise ValidationError(
            f"Split total ({qround(total)}) must equal expense amount ({qround(amount)})"
        )


def _validate_amount(amount) -> Decimal:
    amount = to_decimal(amount)
    if amount <= ZERO:
        raise ValidationError("Expense amount must be positive")
    return qround(amount)


async def _can_modify(store: LedgerStore, expense, user_id: int) -> bool:
    if user_id in (expense.paid_by, expense.added_by):
        return True
    member = await store.get_membership(expense.group_id, user_id)
    return bool(member and member.is_admin)


async def create_expense(store: LedgerStore, user_id: int, group_id: int, data: ExpenseCreate):
    await check_group_membership(store, group_id, user_id)
    group = await store.get_group(group_id)

    payer_id = data.payer_id or user_id
    if payer_id != user_id and not await store.get_membership(group_id, payer_id):
        raise ValidationError("Payer is not a member of the group")

    amount = _validate_amount(data.amount)

    expense = await store.create_expense(
        group_id=group_id,
        paid_by=payer_id,
        added_by=user_id,
        description=data.description,
        amount=amount,
        currency=data.currency or group.currency,
        category=data.category,
        split_type=data.split_type,
        note=data.note,
    )

    member_ids = [m.user_id for m in await store.list_memberships(group_id)]

    if data.splits:
        splits = [(s.user_id, to_decimal(s.share_amount)) for s in data.splits]
    else:
        splits = equal_splits(amount, member_ids)

    try:
        validate_splits(amount, splits, member_ids)
    except ValidationError:
        # the expense row already exists; remove it so no split-less expense survives
        await store.delete_expense(expense.id)
        await store.commit()
        logger.info("expense %s removed after split validation failed", expense.id)
        raise

    await store.replace_splits(expense, splits)
    await store.commit()
    logger.info("expense %s created in group %s (%s)", expense.id, group_id, amount)

    return await store.get_expense(expense.id)


async def update_expense(store: LedgerStore, user_id: int, expense_id: int, data: ExpenseUpdate):
    expense = await store.get_expense(expense_id)

    if not expense:
        raise NotFound("Expense not found")

    await ensure_group_member(store, expense.group_id, user_id)

    if not await _can_modify(store, expense, user_id):
        raise Forbidden("Not authorized to update this expense")

    amount = to_decimal(expense.amount)
    if data.amount is not None:
        amount = _validate_amount(data.amount)

    splits = None
    if data.splits is not None:
        splits = [(s.user_id, to_decimal(s.share_amount)) for s in data.splits]
    elif amount != to_decimal(expense.amount):
        # keep the same participants, re-divide evenly
        splits = equal_splits(amount, [s.user_id for s in expense.splits])

    if splits is not None:
        member_ids = [m.user_id for m in await store.list_memberships(expense.group_id)]
        validate_splits(amount, splits, member_ids)

    for field in ("description", "currency", "category", "split_type", "note"):
        value = getattr(data, field)
        if value is not None:
            setattr(expense, field, value)
    expense.amount = amount

    if splits is not None:
        await store.replace_splits(expense, splits)

    await store.commit()
    logger.info("expense %s updated by %s", expense_id, user_id)

    return await store.get_expense(expense_id)


async def delete_expense(store: LedgerStore, user_id: int, expense_id: int):
    expense = await store.get_expense(expense_id)

    if not expense:
        raise NotFound("Expense not found")

    await ensure_group_member(store, expense.group_id, user_id)

    if not await _can_modify(store, expense, user_id):
        raise Forbidden("You cannot delete this expense")

    await store.delete_expense(expense_id)
    await store.commit()

    return {"status": "deleted"}


async def get_expense_by_id(store: LedgerStore, user_id: int, expense_id: int):
    expense = await store.get_expense(expense_id)

    if not expense:
        raise NotFound("Expense not found")

    member = await store.get_membership(expense.group_id, user_id)
    if not member:
        raise Forbidden("Unauthorized access")

    return expense


async def get_expenses_by_group(store: LedgerStore, user_id: int, group_id: int):
    await check_group_membership(store, group_id, user_id)
    return await store.list_expenses_and_splits(group_id)
