"""
Unit Tests for request schemas
Tests for: field constraints and normalization
"""
import pytest
from pydantic import ValidationError

from bountyexpo.schemas.auth import UserRegister, ProfileUpdate
from bountyexpo.schemas.bounty import BountyCreate, BountyUpdate
from bountyexpo.schemas.conversation import ConversationCreate, MessageCreate
from bountyexpo.schemas.wallet import DepositRequest, WithdrawRequest


class TestUserRegister:

    def test_username_normalized(self):
        user = UserRegister(email="a@example.com", password="SecurePass1", username="@Jane_Doe")
        assert user.username == "jane_doe"

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            UserRegister(email="a@example.com", password="short")

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            UserRegister(email="not-an-email", password="SecurePass1")

    def test_username_pattern(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(username="bad name!")


class TestBountySchemas:

    def test_defaults(self):
        bounty = BountyCreate(title="Walk dog")
        assert bounty.amount == 0
        assert bounty.is_for_honor is False
        assert bounty.work_type.value == "online"

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            BountyCreate(title="Walk dog", amount=-1)

    def test_title_length_limit(self):
        with pytest.raises(ValidationError):
            BountyCreate(title="x" * 201)

    def test_update_tracks_set_fields_only(self):
        patch = BountyUpdate(title="New")
        assert patch.model_dump(exclude_unset=True) == {"title": "New"}

    def test_unknown_work_type_rejected(self):
        with pytest.raises(ValidationError):
            BountyUpdate(work_type="teleport")


class TestMessagingSchemas:

    def test_needs_participant(self):
        with pytest.raises(ValidationError):
            ConversationCreate(participant_ids=[])

    def test_empty_message_rejected(self):
        with pytest.raises(ValidationError):
            MessageCreate(content="")


class TestWalletSchemas:

    @pytest.mark.parametrize("amount", [0, -100])
    def test_deposit_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            DepositRequest(amount=amount)

    def test_withdraw_needs_destination(self):
        with pytest.raises(ValidationError):
            WithdrawRequest(amount=500, destination="12")
