from bountyexpo.core.exceptions import (
    BountyNotFoundError,
    DuplicateRequestError,
    EscrowConflictError,
    EscrowNotFoundError,
    InsufficientFundsError,
    InvalidTransitionError,
    ValidationError,
    error_response,
)


class TestErrorEnvelope:
    """Errors render into the API error envelope"""

    def test_not_found(self):
        error = BountyNotFoundError("abc")

        assert error.http_status == 404
        assert error_response(error) == {
            "success": False,
            "error": {
                "code": "BOUNTY_NOT_FOUND",
                "message": "Bounty with ID 'abc' not found",
                "details": {"resource_type": "Bounty", "resource_id": "abc"},
            },
        }

    def test_escrow_not_found_code(self):
        assert EscrowNotFoundError("b1").code == "ESCROW_TRANSACTION_NOT_FOUND"

    def test_invalid_transition(self):
        error = InvalidTransitionError("archive", "completed")

        assert error.message == "Cannot archive bounty with status: completed"
        assert error.code == "INVALID_TRANSITION"
        assert error.details == {"action": "archive", "status": "completed"}

    def test_duplicate_request(self):
        error = DuplicateRequestError("b1")
        assert error.http_status == 409
        assert error.message == "You have already applied to this bounty"

    def test_escrow_conflict(self):
        assert EscrowConflictError("Escrow already exists for this bounty").code == "ESCROW_CONFLICT"

    def test_insufficient_funds(self):
        error = InsufficientFundsError(required=500, available=100)

        assert error.http_status == 400
        assert error.code == "INSUFFICIENT_FUNDS"
        assert error.details == {"required": 500, "available": 100}

    def test_validation_field(self):
        assert ValidationError("Title is required", field="title").to_dict()["details"] == {"field": "title"}
        assert ValidationError("bad").details == {}
