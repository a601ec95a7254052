"""
Shared plan use cases: a subscription cost split between several users.

Equal-split shares are computed once, when the plan is created; later
accept/decline does not rebalance them.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from sqlalchemy import or_
from sqlalchemy.orm import Session

from suba.application.errors import ValidationError, NotFoundError, require_fields
from suba.infrastructure.db.models import SharedPlan, SharedPlanParticipant, User

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def normalize_emails(emails) -> list[str]:
    """Strip, drop blanks and de-duplicate, keeping first-seen order."""
    if not isinstance(emails, (list, tuple)):
        return []
    seen = []
    for raw in emails:
        if not isinstance(raw, str):
            continue
        email = raw.strip()
        if email and email not in seen:
            seen.append(email)
    return seen


def compute_splits(total_amount: Decimal, split_type: str, invitee_count: int) -> tuple[Decimal, Decimal]:
    """
    Return (owner_share, invitee_share).

    Equal split divides the total by owner + invitees, rounded to cents.
    Other split types leave the whole amount on the owner and 0 on invitees.
    """
    if split_type == "equal":
        share = (total_amount / max(1 + invitee_count, 1)).quantize(_CENT, rounding=ROUND_HALF_UP)
        return share, share
    return total_amount.quantize(_CENT, rounding=ROUND_HALF_UP), Decimal("0.00")


def _participant_row(p: SharedPlanParticipant, user: User | None) -> dict:
    return {
        "id": p.id,
        "plan_id": p.plan_id,
        "user_id": p.user_id,
        "status": p.status,
        "split_amount": float(p.split_amount),
        "user_name": user.full_name if user else None,
        "user_email": user.email if user else None,
        "avatar_url": user.avatar_url if user else None,
        "created_at": p.created_at,
    }


def _plan_row(plan: SharedPlan, owner: User | None, participants: list[dict]) -> dict:
    return {
        "id": plan.id,
        "user_id": plan.user_id,
        "plan_name": plan.plan_name,
        "total_amount": float(plan.total_amount),
        "split_type": plan.split_type,
        "max_participants": plan.max_participants,
        "is_active": bool(plan.is_active),
        "created_at": plan.created_at,
        "owner_name": owner.full_name if owner else None,
        "owner_email": owner.email if owner else None,
        "participants": participants,
    }


class SharedPlanReadService:
    def __init__(self, db: Session):
        self.db = db

    def _participants_by_plan(self, plan_ids: list[int]) -> dict[int, list[dict]]:
        if not plan_ids:
            return {}
        rows = (
            self.db.query(SharedPlanParticipant, User)
            .outerjoin(User, User.id == SharedPlanParticipant.user_id)
            .filter(SharedPlanParticipant.plan_id.in_(plan_ids))
            .order_by(SharedPlanParticipant.created_at.asc(), SharedPlanParticipant.id.asc())
            .all()
        )
        grouped: dict[int, list[dict]] = {}
        for participant, user in rows:
            grouped.setdefault(participant.plan_id, []).append(_participant_row(participant, user))
        return grouped

    def _visible_plans_query(self, user_id: int):
        participant_plan_ids = self.db.query(SharedPlanParticipant.plan_id).filter(
            SharedPlanParticipant.user_id == user_id
        )
        return (
            self.db.query(SharedPlan, User)
            .outerjoin(User, User.id == SharedPlan.user_id)
            .filter(or_(SharedPlan.user_id == user_id, SharedPlan.id.in_(participant_plan_ids)))
        )

    def list_for_user(self, user_id: int) -> list[dict]:
        rows = (
            self._visible_plans_query(user_id)
            .order_by(SharedPlan.created_at.desc(), SharedPlan.id.desc())
            .all()
        )
        participants = self._participants_by_plan([plan.id for plan, _ in rows])
        return [_plan_row(plan, owner, participants.get(plan.id, [])) for plan, owner in rows]

    def get_for_user(self, plan_id: int, user_id: int) -> dict:
        row = self._visible_plans_query(user_id).filter(SharedPlan.id == plan_id).first()
        if not row:
            raise NotFoundError("Shared plan not found")
        plan, owner = row
        return _plan_row(plan, owner, self._participants_by_plan([plan.id]).get(plan.id, []))


class CreateSharedPlanUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        plan_name: str | None,
        total_amount,
        split_type: str | None,
        max_participants: int | None = None,
        participant_emails=None,
    ) -> int:
        require_fields(
            {"plan_name": plan_name, "total_amount": total_amount, "split_type": split_type},
            ["plan_name", "total_amount", "split_type"],
        )
        try:
            total = Decimal(str(total_amount))
        except (InvalidOperation, ValueError):
            raise ValidationError("Invalid total_amount")
        if not total.is_finite() or total <= 0:
            raise ValidationError("Invalid total_amount")

        try:
            owner = self.db.query(User).filter(User.id == user_id).first()
            if not owner:
                raise ValidationError("Invalid user ID. Owner not found.")

            plan = SharedPlan(
                user_id=user_id,
                plan_name=plan_name.strip(),
                total_amount=total,
                split_type=split_type,
                max_participants=max_participants or 2,
                is_active=True,
            )
            self.db.add(plan)
            self.db.flush()

            emails = normalize_emails(participant_emails)
            invitee_ids: list[int] = []
            if emails:
                found = self.db.query(User.id).filter(User.email.in_(emails)).all()
                for (uid,) in found:
                    if uid != user_id and uid not in invitee_ids:
                        invitee_ids.append(uid)

            owner_split, invitee_split = compute_splits(total, split_type, len(invitee_ids))

            self.db.add(SharedPlanParticipant(
                plan_id=plan.id, user_id=user_id, status="accepted", split_amount=owner_split,
            ))
            for uid in invitee_ids:
                self.db.add(SharedPlanParticipant(
                    plan_id=plan.id, user_id=uid, status="invited", split_amount=invitee_split,
                ))
            self.db.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Created shared plan id=%d owner=%d invitees=%d", plan.id, user_id, len(invitee_ids))
        return plan.id


class RespondToInvitationUseCase:
    """Accept or decline an invitation addressed to the current user."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, participant_id: int, user_id: int, accept: bool) -> None:
        participant = self.db.query(SharedPlanParticipant).filter(
            SharedPlanParticipant.id == participant_id,
            SharedPlanParticipant.user_id == user_id,
            SharedPlanParticipant.status == "invited",
        ).first()
        if not participant:
            raise NotFoundError("Invitation not found")
        participant.status = "accepted" if accept else "declined"
        self.db.commit()


class DeleteSharedPlanUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, plan_id: int, user_id: int) -> None:
        plan = self.db.query(SharedPlan).filter(
            SharedPlan.id == plan_id,
            SharedPlan.user_id == user_id,
        ).first()
        if not plan:
            raise NotFoundError("Shared plan not found")
        try:
            self.db.query(SharedPlanParticipant).filter(
                SharedPlanParticipant.plan_id == plan.id
            ).delete(synchronize_session=False)
            self.db.delete(plan)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
