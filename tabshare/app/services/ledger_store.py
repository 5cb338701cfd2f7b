"""
services/ledger_store.py — The ledger: single authority for all mutations.

LedgerStore owns the users, groups and expenses collections and is the only
code allowed to change them. After any public method returns, the three
collections are internally consistent and `balances` reflects them.

Mutation protocol (every public mutating method):
  1. Validate everything first. A rejected call raises AppError and leaves
     no trace: nothing is changed, nothing is saved.
  2. Apply by whole-object replacement. Collections are tuples of frozen
     records; a change swaps in a new tuple, never edits a record in place.
  3. _commit(): recompute balances from the full expense collection, then
     save a snapshot through the persistence collaborator.

Concurrency:
  All of the above happens under one re-entrant lock, so a reader on
  another thread never sees a half-applied change, and recomputation never
  reads a collection that is being swapped.

Persistence failures are warnings, never errors:
  - load failure at start() → bootstrap dataset + SNAPSHOT_LOAD_FAILED
  - save failure after a mutation → the change stands + SNAPSHOT_SAVE_FAILED
  Warnings are collected per thread and handed to the caller through
  drain_warnings().

Layer rules:
  - No Flask imports. The persistence collaborator is injected.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping

from marshmallow import ValidationError

from tabshare.app.errors import AppError, ErrorCode, WarningCode
from tabshare.app.models.expense import DEFAULT_CATEGORY, SETTLEMENT_CATEGORY, Expense, to_money
from tabshare.app.models.group import Group
from tabshare.app.models.split import Split
from tabshare.app.models.user import User
from tabshare.app.schemas.snapshot_schema import LedgerSnapshotSchema
from tabshare.app.services import balance_service, reminder_service
from tabshare.app.services.bootstrap import BOOTSTRAP_CURRENT_USER_ID, bootstrap_dataset
from tabshare.app.services.snapshot_store import SnapshotStoreError

logger = logging.getLogger(__name__)

DEFAULT_SPLIT_TOLERANCE = Decimal("0.10")

_EDITABLE_PROFILE_FIELDS = ("name", "email", "avatar")


def _new_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def _require_text(value: str | None, field: str) -> str:
    """Returns value stripped, or raises MISSING_FIELD (400) when blank."""
    if value is None or not str(value).strip():
        raise AppError(
            ErrorCode.MISSING_FIELD,
            f"'{field}' is required and must not be blank.",
            400,
            field=field,
        )
    return str(value).strip()


def _as_aware(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class LedgerStore:

    def __init__(
            self,
            persistence=None,
            *,
            split_tolerance: Decimal = DEFAULT_SPLIT_TOLERANCE,
            current_user_id: str = BOOTSTRAP_CURRENT_USER_ID,
    ) -> None:
        """
        Args:
            persistence:     Object with load() -> dict | None and save(dict).
                             None keeps the ledger purely in memory.
            split_tolerance: Accepted |sum(splits) - amount| per expense.
            current_user_id: The user the ledger acts for (relationship view,
                             reminders, default payer).
        """
        self._persistence = persistence
        self._split_tolerance = split_tolerance
        self._current_user_id = current_user_id

        self._lock = threading.RLock()
        self._local = threading.local()

        self._users: tuple[User, ...] = ()
        self._groups: tuple[Group, ...] = ()
        self._expenses: tuple[Expense, ...] = ()
        self._current_group_id: str | None = None
        self._balances: Mapping[str, Decimal] = MappingProxyType({})

    # ── Startup ────────────────────────────────────────────────────────────

    def start(self) -> None:
        """
        Seeds the ledger. Called once per process.

        Uses the stored snapshot when there is one and it parses; otherwise
        the bootstrap dataset. Never raises for persistence trouble.
        """
        with self._lock:
            records = self._load_snapshot()
            if records is None:
                logger.info("Seeding ledger from bootstrap dataset")
                records = bootstrap_dataset()

            self._users = tuple(records["users"])
            self._groups = tuple(records["groups"])
            self._expenses = tuple(records["expenses"])
            self._current_group_id = self._groups[0].id if self._groups else None
            self.recompute_balances()

            logger.info(
                "Ledger ready: %d users, %d groups, %d expenses",
                len(self._users), len(self._groups), len(self._expenses),
            )

    def _load_snapshot(self) -> dict | None:
        if self._persistence is None:
            return None
        try:
            raw = self._persistence.load()
            if raw is None:
                return None
            return LedgerSnapshotSchema().load(raw)
        except (SnapshotStoreError, ValidationError) as exc:
            logger.warning("Snapshot load failed, using bootstrap data: %s", exc)
            self._warn(
                WarningCode.SNAPSHOT_LOAD_FAILED,
                "Stored ledger could not be loaded; starting from bootstrap data.",
            )
            return None

    # ── Read access ────────────────────────────────────────────────────────

    @property
    def users(self) -> tuple[User, ...]:
        return self._users

    @property
    def groups(self) -> tuple[Group, ...]:
        return self._groups

    @property
    def expenses(self) -> tuple[Expense, ...]:
        return self._expenses

    @property
    def balances(self) -> Mapping[str, Decimal]:
        """Net balance per user id. Read-only; replaced on every mutation."""
        return self._balances

    @property
    def split_tolerance(self) -> Decimal:
        return self._split_tolerance

    @property
    def current_user_id(self) -> str:
        return self._current_user_id

    @property
    def current_user(self) -> User | None:
        return self._find_user(self._current_user_id)

    @property
    def current_group(self) -> Group | None:
        if self._current_group_id is None:
            return None
        return self._find_group(self._current_group_id)

    def get_user(self, user_id: str) -> User:
        """Raises USER_NOT_FOUND (404) when absent."""
        user = self._find_user(user_id)
        if user is None:
            raise AppError(ErrorCode.USER_NOT_FOUND, f"User {user_id} does not exist.", 404)
        return user

    def get_group(self, group_id: str) -> Group:
        """Raises GROUP_NOT_FOUND (404) when absent."""
        group = self._find_group(group_id)
        if group is None:
            raise AppError(ErrorCode.GROUP_NOT_FOUND, f"Group {group_id} does not exist.", 404)
        return group

    def get_expense(self, expense_id: str) -> Expense:
        """Raises EXPENSE_NOT_FOUND (404) when absent."""
        expense = self._find_expense(expense_id)
        if expense is None:
            raise AppError(
                ErrorCode.EXPENSE_NOT_FOUND,
                f"Expense {expense_id} does not exist.",
                404,
            )
        return expense

    def list_expenses(self, group_id: str | None = None) -> list[Expense]:
        """Expenses newest first, optionally limited to one group."""
        expenses = self._expenses
        if group_id is not None:
            self.get_group(group_id)
            expenses = tuple(e for e in expenses if e.group_id == group_id)
        return sorted(expenses, key=lambda e: e.date, reverse=True)

    def group_balances(self, group_id: str) -> dict[str, Decimal]:
        """
        Balances computed from one group's expenses only, for its members.
        The ledger-wide `balances` remain the authoritative figures.
        """
        group = self.get_group(group_id)
        expenses = [e for e in self._expenses if e.group_id == group_id]
        return balance_service.compute_balances(expenses, group.member_ids)

    def payment_reminders(
            self,
            user_id: str,
            now: datetime | None = None,
            overdue_after: timedelta = reminder_service.DEFAULT_OVERDUE_AFTER,
    ) -> list[dict]:
        self.get_user(user_id)
        now = _as_aware(now) if now is not None else datetime.now(timezone.utc)
        return reminder_service.payment_reminders(self._expenses, user_id, now, overdue_after)

    def snapshot(self) -> dict:
        """The persisted form of the ledger (see snapshot_schema.py)."""
        with self._lock:
            return LedgerSnapshotSchema().dump({
                "users": self._users,
                "groups": self._groups,
                "expenses": self._expenses,
            })

    def drain_warnings(self) -> list[dict]:
        """Returns and clears the warnings raised on the calling thread."""
        warnings = getattr(self._local, "warnings", [])
        self._local.warnings = []
        return warnings

    # ── Users ──────────────────────────────────────────────────────────────

    def add_user(self, name: str, email: str, avatar: str | None = None) -> User:
        """Creates a user with a fresh id. Raises MISSING_FIELD on blank name/email."""
        with self._lock:
            user = self._build_user(name, email, avatar)
            self._users = (*self._users, user)
            self._commit("add_user", user.id)
            return user

    def update_user(self, user_id: str, acting_user_id: str, **changes) -> User:
        """
        Replaces profile fields (name, email, avatar) of user_id.

        Raises:
            AppError(USER_NOT_FOUND, 404)
            AppError(FORBIDDEN, 403)     — acting_user_id is not user_id.
            AppError(INVALID_FIELD, 400) — a field other than a profile field.
            AppError(MISSING_FIELD, 400) — blank name or email.
        """
        with self._lock:
            user = self.get_user(user_id)
            if acting_user_id != user_id:
                raise AppError(
                    ErrorCode.FORBIDDEN,
                    "You can only edit your own profile.",
                    403,
                )

            unknown = sorted(set(changes) - set(_EDITABLE_PROFILE_FIELDS))
            if unknown:
                raise AppError(
                    ErrorCode.INVALID_FIELD,
                    f"'{unknown[0]}' is not an editable profile field.",
                    400,
                    field=unknown[0],
                )

            updated = User(
                id=user.id,
                name=_require_text(changes["name"], "name") if "name" in changes else user.name,
                email=_require_text(changes["email"], "email") if "email" in changes else user.email,
                avatar=changes["avatar"] if "avatar" in changes else user.avatar,
            )
            self._users = tuple(updated if u.id == user_id else u for u in self._users)
            self._commit("update_user", user_id)
            return updated

    # ── Groups ─────────────────────────────────────────────────────────────

    def add_group(self, name: str, member_ids: Iterable[str] = ()) -> Group:
        """
        Creates a group and makes it the current group.
        Duplicate member ids are collapsed; duplicate group names are allowed.

        Raises:
            AppError(MISSING_FIELD, 400)  — blank name.
            AppError(USER_NOT_FOUND, 404) — an unknown member id.
        """
        with self._lock:
            name = _require_text(name, "name")
            members = tuple(dict.fromkeys(member_ids))
            for member_id in members:
                self.get_user(member_id)

            group = Group(id=_new_id("g"), name=name, member_ids=members)
            self._groups = (*self._groups, group)
            self._current_group_id = group.id
            self._commit("add_group", group.id)
            return group

    def add_member_to_group(self, group_id: str, user_id: str) -> bool:
        """
        Appends user_id to the group's members.

        Returns True when the member was added, False when they already
        belonged (no-op, reported as an ALREADY_MEMBER warning).
        """
        with self._lock:
            group = self.get_group(group_id)
            self.get_user(user_id)

            if group.has_member(user_id):
                self._warn(
                    WarningCode.ALREADY_MEMBER,
                    f"User {user_id} is already a member of group {group_id}.",
                )
                return False

            self._replace_group(Group(
                id=group.id,
                name=group.name,
                member_ids=(*group.member_ids, user_id),
            ))
            self._commit("add_member_to_group", f"{group_id}/{user_id}")
            return True

    def invite_member(
            self,
            group_id: str,
            name: str,
            email: str,
            avatar: str | None = None,
    ) -> User:
        """Creates a user and adds them to group_id in one step."""
        with self._lock:
            group = self.get_group(group_id)
            user = self._build_user(name, email, avatar)

            self._users = (*self._users, user)
            self._replace_group(Group(
                id=group.id,
                name=group.name,
                member_ids=(*group.member_ids, user.id),
            ))
            self._commit("invite_member", f"{group_id}/{user.id}")
            return user

    def set_current_group(self, group_id: str) -> Group:
        """Switches the active group. Raises GROUP_NOT_FOUND (404)."""
        with self._lock:
            group = self.get_group(group_id)
            self._current_group_id = group.id
            logger.debug("Current group set to %s", group.id)
            return group

    # ── Expenses ───────────────────────────────────────────────────────────

    def add_expense(
            self,
            title: str,
            amount: Decimal,
            paid_by: str,
            group_id: str,
            splits: Iterable[Split],
            date: datetime | None = None,
            category: str | None = None,
    ) -> Expense:
        """
        Records an expense exactly as given. Splits are NOT recomputed.

        Raises:
            AppError(MISSING_FIELD, 400)         — blank title, no splits.
            AppError(INVALID_AMOUNT, 400)        — amount <= 0, split amount < 0.
            AppError(DUPLICATE_SPLIT_USER, 400)  — a user appears twice in splits.
            AppError(GROUP_NOT_FOUND, 404)
            AppError(USER_NOT_FOUND, 404)        — payer or split user unknown.
            AppError(PAYER_NOT_MEMBER, 422)      — payer not in the group.
            AppError(SPLIT_USER_NOT_MEMBER, 422) — split user not in the group.
            AppError(SPLIT_SUM_MISMATCH, 422)    — |sum(splits) - amount| > tolerance.
        """
        with self._lock:
            expense = self._build_expense(
                title=title,
                amount=amount,
                paid_by=paid_by,
                group_id=group_id,
                splits=tuple(splits),
                date=date,
                category=category,
            )
            self._expenses = (*self._expenses, expense)
            self._commit("add_expense", expense.id)
            return expense

    def delete_expense(self, expense_id: str) -> bool:
        """
        Removes an expense by id.

        Idempotent: an unknown id is a silent no-op. Returns True when an
        expense was removed.
        """
        with self._lock:
            remaining = tuple(e for e in self._expenses if e.id != expense_id)
            if len(remaining) == len(self._expenses):
                logger.debug("delete_expense: %s not present, nothing to do", expense_id)
                return False

            self._expenses = remaining
            self._commit("delete_expense", expense_id)
            return True

    def mark_expense_as_paid(self, expense_id: str, user_id: str) -> Expense:
        """
        Marks user_id's split of expense_id as paid.

        Only that member's debit disappears from the balances; the payer's
        credit is unchanged.

        Raises:
            AppError(EXPENSE_NOT_FOUND, 404)
            AppError(SPLIT_NOT_FOUND, 404) — user_id has no split on the expense.
        """
        with self._lock:
            expense = self.get_expense(expense_id)
            if expense.split_for(user_id) is None:
                raise AppError(
                    ErrorCode.SPLIT_NOT_FOUND,
                    f"User {user_id} has no share in expense {expense_id}.",
                    404,
                )

            updated = expense.with_split_paid(user_id)
            self._expenses = tuple(
                updated if e.id == expense_id else e for e in self._expenses
            )
            self._commit("mark_expense_as_paid", f"{expense_id}/{user_id}")
            return updated

    def settle_up(
            self,
            from_user_id: str,
            to_user_id: str,
            amount: Decimal,
            group_id: str | None = None,
            date: datetime | None = None,
    ) -> Expense:
        """
        Records a direct payment from from_user_id to to_user_id.

        Synthesizes a "Settlement" expense paid by from_user_id with two
        pre-paid splits: {from, amount} and {to, 0}, and records it through
        add_expense(). Net effect on balances: from_user_id is credited
        `amount`; to_user_id is unchanged. Existing expenses are untouched.

        group_id defaults to the current group.

        Raises:
            AppError(INVALID_AMOUNT, 400)   — amount <= 0.
            AppError(SELF_SETTLEMENT, 422)  — from_user_id == to_user_id.
            AppError(NO_CURRENT_GROUP, 422) — no group_id and no current group.
            plus everything add_expense() raises.
        """
        with self._lock:
            amount = self._positive_amount(amount)

            if from_user_id == to_user_id:
                raise AppError(
                    ErrorCode.SELF_SETTLEMENT,
                    "A settlement cannot be made to yourself.",
                    422,
                    field="to_user_id",
                )

            if group_id is None:
                if self._current_group_id is None:
                    raise AppError(
                        ErrorCode.NO_CURRENT_GROUP,
                        "No group given and no current group is selected.",
                        422,
                        field="group_id",
                    )
                group_id = self._current_group_id

            payer = self.get_user(from_user_id)
            payee = self.get_user(to_user_id)

            return self.add_expense(
                title=f"{payer.name} paid {payee.name}",
                amount=amount,
                paid_by=payer.id,
                group_id=group_id,
                splits=(
                    Split(user_id=payer.id, amount=amount, is_paid=True),
                    Split(user_id=payee.id, amount=Decimal("0.00"), is_paid=True),
                ),
                date=date,
                category=SETTLEMENT_CATEGORY,
            )

    # ── Balance engine hook ────────────────────────────────────────────────

    def recompute_balances(self) -> Mapping[str, Decimal]:
        """Recomputes every user's net balance from the full expense collection."""
        with self._lock:
            balances = balance_service.compute_balances(
                self._expenses,
                (u.id for u in self._users),
            )
            self._balances = MappingProxyType(balances)
            return self._balances

    # ── Private helpers ────────────────────────────────────────────────────

    def _commit(self, operation: str, subject: str) -> None:
        """Recompute, then persist. Runs at the end of every mutation."""
        self.recompute_balances()
        logger.info("%s %s", operation, subject)
        self._persist()

    def _persist(self) -> None:
        if self._persistence is None:
            return
        try:
            self._persistence.save(self.snapshot())
        except SnapshotStoreError as exc:
            logger.warning("Snapshot save failed; change kept in memory only: %s", exc)
            self._warn(
                WarningCode.SNAPSHOT_SAVE_FAILED,
                "The change was applied but could not be saved to storage.",
            )

    def _warn(self, code: str, message: str) -> None:
        if not hasattr(self._local, "warnings"):
            self._local.warnings = []
        self._local.warnings.append({"code": code, "message": message})

    def _find_user(self, user_id: str) -> User | None:
        return next((u for u in self._users if u.id == user_id), None)

    def _find_group(self, group_id: str) -> Group | None:
        return next((g for g in self._groups if g.id == group_id), None)

    def _find_expense(self, expense_id: str) -> Expense | None:
        return next((e for e in self._expenses if e.id == expense_id), None)

    def _replace_group(self, group: Group) -> None:
        self._groups = tuple(group if g.id == group.id else g for g in self._groups)

    def _build_user(self, name: str, email: str, avatar: str | None) -> User:
        return User(
            id=_new_id("u"),
            name=_require_text(name, "name"),
            email=_require_text(email, "email"),
            avatar=avatar,
        )

    @staticmethod
    def _money(amount, field: str) -> Decimal:
        """to_money(), raising INVALID_AMOUNT (400) for non-numeric input."""
        try:
            return to_money(amount)
        except (ArithmeticError, TypeError, ValueError):
            raise AppError(
                ErrorCode.INVALID_AMOUNT,
                f"'{field}' must be a number.",
                400,
                field=field,
            ) from None

    def _positive_amount(self, amount, field: str = "amount") -> Decimal:
        value = self._money(amount, field)
        if value <= Decimal("0"):
            raise AppError(
                ErrorCode.INVALID_AMOUNT,
                "Amount must be greater than zero.",
                400,
                field=field,
            )
        return value

    def _build_expense(
            self,
            title: str,
            amount,
            paid_by: str,
            group_id: str,
            splits: tuple[Split, ...],
            date: datetime | None,
            category: str | None,
    ) -> Expense:
        """Validates a draft and returns the Expense to record. Changes nothing."""
        title = _require_text(title, "title")
        amount = self._positive_amount(amount)

        group = self.get_group(group_id)
        self.get_user(paid_by)
        if not group.has_member(paid_by):
            raise AppError(
                ErrorCode.PAYER_NOT_MEMBER,
                f"User {paid_by} is not a member of group {group_id}.",
                422,
                field="paid_by",
            )

        if not splits:
            raise AppError(
                ErrorCode.MISSING_FIELD,
                "An expense needs at least one split.",
                400,
                field="splits",
            )

        seen: set[str] = set()
        normalised = []
        for split in splits:
            if split.user_id in seen:
                raise AppError(
                    ErrorCode.DUPLICATE_SPLIT_USER,
                    f"User {split.user_id} appears more than once in splits.",
                    400,
                    field="splits",
                )
            seen.add(split.user_id)

            self.get_user(split.user_id)
            if not group.has_member(split.user_id):
                raise AppError(
                    ErrorCode.SPLIT_USER_NOT_MEMBER,
                    f"User {split.user_id} is not a member of group {group_id}.",
                    422,
                    field="splits",
                )

            share = self._money(split.amount, "splits")
            if share < Decimal("0"):
                raise AppError(
                    ErrorCode.INVALID_AMOUNT,
                    "Split amounts must not be negative.",
                    400,
                    field="splits",
                )
            normalised.append(Split(user_id=split.user_id, amount=share, is_paid=split.is_paid))

        expense = Expense(
            id=_new_id("e"),
            title=title,
            amount=amount,
            date=_as_aware(date) if date is not None else datetime.now(timezone.utc),
            paid_by=paid_by,
            group_id=group.id,
            category=(category or "").strip() or DEFAULT_CATEGORY,
            splits=tuple(normalised),
        )

        if abs(expense.split_total - amount) > self._split_tolerance:
            raise AppError(
                ErrorCode.SPLIT_SUM_MISMATCH,
                f"Split amounts ({expense.split_total}) do not equal expense amount ({amount}).",
                422,
                field="splits",
            )
        return expense
