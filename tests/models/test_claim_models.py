"""
Tests for the claim, rule, action and member ORM models: DTO conversion,
database constraints, and the ORM-level immutability guards.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from claims_kernel.domain.workflow import ActionDecision, ClaimStatus
from claims_kernel.exceptions import ImmutabilityViolationError
from claims_kernel.models import (
    ApprovalActionModel,
    ApprovalRuleModel,
    ClaimModel,
    MemberModel,
)


def _claim_model(session, claim_id):
    return session.execute(
        select(ClaimModel).where(ClaimModel.claim_id == claim_id)
    ).scalar_one()


def _action_model(session, claim_id):
    return session.execute(
        select(ApprovalActionModel).where(ApprovalActionModel.claim_id == claim_id)
    ).scalars().first()


class TestClaimModel:

    def test_to_dto(self, session, submit_claim, roster):
        record = submit_claim(amount=Decimal("42.50"), currency="gbp")
        model = _claim_model(session, record.claim_id)
        dto = model.to_dto()
        assert dto.claim_id == record.claim_id
        assert dto.amount == Decimal("42.50")
        assert dto.currency == "GBP"
        assert dto.status == ClaimStatus.PENDING
        assert dto.submitter_id == roster.employee.user_id
        assert repr(model).startswith("<Claim ")

    def test_timestamps_reload_as_utc(self, session, submit_claim, processor, roster):
        record = submit_claim()
        written = processor.process(
            record.claim_id, roster.manager.user_id, "REJECTED", "Duplicate receipt",
        )
        session.expire_all()
        reloaded = _claim_model(session, record.claim_id).to_dto()

        for name in ("initiated_at", "last_action_at", "resolved_at", "created_at"):
            value = getattr(reloaded, name)
            assert value.tzinfo is not None
            assert value.utcoffset().total_seconds() == 0
        assert reloaded == written

    def test_naive_timestamp_stored_as_utc(self, session, submit_claim):
        record = submit_claim()
        model = _claim_model(session, record.claim_id)
        model.last_action_at = datetime(2024, 3, 1, 8, 30)
        session.flush()
        session.expire_all()
        reloaded = _claim_model(session, record.claim_id)
        assert reloaded.last_action_at == datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)

    def test_version_bumps_on_every_update(self, session, submit_claim):
        record = submit_claim()
        model = _claim_model(session, record.claim_id)
        before = model.version
        model.last_action_at = datetime(2024, 2, 1, tzinfo=timezone.utc)
        session.flush()
        assert model.version == before + 1

    def test_negative_step_rejected_by_database(self, session, submit_claim):
        record = submit_claim()
        model = _claim_model(session, record.claim_id)
        model.current_step = -1
        with pytest.raises(IntegrityError):
            session.flush()

    def test_unknown_status_rejected_by_database(self, session, submit_claim):
        record = submit_claim()
        model = _claim_model(session, record.claim_id)
        model.status = "ESCALATED"
        with pytest.raises(IntegrityError):
            session.flush()


class TestTerminalClaimImmutability:

    def test_rejected_claim_step_cannot_change(self, session, submit_claim, processor, roster):
        record = submit_claim()
        processor.process(record.claim_id, roster.manager.user_id, "REJECTED", "Receipt missing")

        model = _claim_model(session, record.claim_id)
        assert model.status == "REJECTED"
        model.current_step = 2
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_approved_claim_status_cannot_change(self, session, submit_claim, processor, roster):
        record = submit_claim(submitter=roster.loner)
        processor.process(record.claim_id, roster.finance.user_id, "APPROVED")
        processor.process(record.claim_id, roster.director.user_id, "APPROVED")

        model = _claim_model(session, record.claim_id)
        assert model.status == "APPROVED"
        model.status = "PENDING"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "Claim"

    def test_pending_claim_is_mutable(self, session, submit_claim):
        record = submit_claim()
        model = _claim_model(session, record.claim_id)
        model.current_step = 1
        session.flush()
        assert model.to_dto().current_step == 1


class TestApprovalActionImmutability:

    def test_action_cannot_be_updated(self, session, submit_claim, processor, roster):
        record = submit_claim()
        processor.process(record.claim_id, roster.manager.user_id, "APPROVED")
        action = _action_model(session, record.claim_id)
        action.comment = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_action_cannot_be_deleted(self, session, submit_claim, processor, roster):
        record = submit_claim()
        processor.process(record.claim_id, roster.manager.user_id, "APPROVED")
        action = _action_model(session, record.claim_id)
        session.delete(action)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_duplicate_actor_step_rejected_by_database(
        self, session, submit_claim, deterministic_clock, roster,
    ):
        record = submit_claim()
        for _ in range(2):
            session.add(
                ApprovalActionModel(
                    action_id=uuid4(),
                    claim_id=record.claim_id,
                    actor_id=roster.manager.user_id,
                    step_number=0,
                    decision=ActionDecision.APPROVED.value,
                    acted_at=deterministic_clock.now(),
                )
            )
        with pytest.raises(IntegrityError):
            session.flush()

    def test_action_to_dto(self, session, submit_claim, processor, roster):
        record = submit_claim()
        processor.process(record.claim_id, roster.manager.user_id, "approved")
        dto = _action_model(session, record.claim_id).to_dto()
        assert dto.decision == ActionDecision.APPROVED
        assert dto.step_number == 0
        assert dto.is_override is False
        assert dto.comment is None


class TestRuleModels:

    def test_steps_ordered_by_sequence(self, session, make_rule, roster):
        a, b = roster.approvers[:2]
        rule = make_rule([[a], [b]])
        model = session.execute(
            select(ApprovalRuleModel).where(ApprovalRuleModel.rule_id == rule.rule_id)
        ).scalar_one()
        assert [s.sequence_order for s in model.steps] == [1, 2]
        assert [ap.user_id for ap in model.steps[0].approvers] == [a.user_id]

    def test_threshold_out_of_range_rejected_by_database(self, session, roster):
        session.add(
            ApprovalRuleModel(
                rule_id=uuid4(),
                organization_id=roster.organization_id,
                name="Bad threshold",
                rule_type="CONDITIONAL",
                percentage_threshold=Decimal("150"),
                is_manager_approver=False,
                created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        )
        with pytest.raises(IntegrityError):
            session.flush()


class TestMemberModel:

    def test_capabilities_round_trip_as_frozenset(self, session, make_member, roster):
        member = make_member(roster.organization_id, ("FINANCE", "ADMIN"))
        model = session.execute(
            select(MemberModel).where(MemberModel.user_id == member.user_id)
        ).scalar_one()
        assert model.capabilities == ["ADMIN", "FINANCE"]
        assert model.to_dto().capabilities == frozenset({"FINANCE", "ADMIN"})
