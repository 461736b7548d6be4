from voter_roster.exceptions import ConcurrentConflict, MissingIdentity, NotFound, RosterError, ValidationError


def test_details_drop_unknown_values():
    error = NotFound("No voter with id x", record_id="x")
    assert error.details == {"record_id": "x"}
    assert str(error) == "No voter with id x (record_id=x)"


def test_message_alone_when_no_details():
    assert str(NotFound("Identity card number is empty")) == "Identity card number is empty"


def test_kinds_and_retryable():
    assert MissingIdentity(row_number=3).kind == "MissingIdentity"
    assert MissingIdentity(row_number=3).details == {"row_number": 3}
    assert ConcurrentConflict("busy", attempts=3).retryable
    assert not RosterError("x").retryable


def test_validation_value_is_truncated():
    error = ValidationError("Too long", field_name="address", field_value="x" * 500)
    assert len(error.details["field_value"]) == 100
