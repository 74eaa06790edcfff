from datetime import date, datetime, timedelta, timezone

import pytest
from bson import ObjectId

from staffdir.core.errors import ErrorKind
from staffdir.core.user_validator import validate_user, validate_user_update
from staffdir.models.user_model import UserModel
from staffdir.schemas.user_schemas import UserOut

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def kinds(result):
    return [(e.kind, e.field) for e in result.errors]


def without(payload, path):
    *parents, leaf = path.split(".")
    target = payload
    for key in parents:
        target = target[key]
    del target[leaf]
    return payload


def test_valid_payload_is_accepted(make_payload):
    result = validate_user(make_payload(), now=NOW)

    assert result.ok
    assert result.errors == []
    assert result.record.identity.first_name == "Jo"
    assert result.record.user_category.main_category == "doctor"


def test_record_is_normalized(make_payload):
    result = validate_user(make_payload(email="  Jo@X.com ", phone="06 12 34 56 78"), now=NOW)

    assert result.ok
    assert result.record.email == "jo@x.com"
    assert result.record.phone == "0612345678"


@pytest.mark.parametrize("path", [
    "identity",
    "email",
    "password",
    "userCategory",
    "identity.firstName",
    "identity.lastName",
    "identity.birthdayAt",
    "userCategory.mainCategory",
    "userCategory.detailCategory",
])
def test_missing_required_field_reports_only_that_field(make_payload, path):
    result = validate_user(without(make_payload(), path), now=NOW)

    assert kinds(result) == [(ErrorKind.MISSING_REQUIRED_FIELD, path)]
    assert result.errors[0].message.endswith("is required")


def test_null_required_field_counts_as_missing(make_payload):
    result = validate_user(make_payload(email=None), now=NOW)

    assert kinds(result) == [(ErrorKind.MISSING_REQUIRED_FIELD, "email")]
    assert result.errors[0].message == "Email is required"


def test_optional_fields_can_be_absent(make_payload):
    payload = make_payload(phone=None)
    result = validate_user(payload, now=NOW)

    assert result.ok
    assert result.record.phone is None
    assert result.record.address is None
    assert result.record.department is None


@pytest.mark.parametrize("email", ["plainaddress", "jo@localhost", "@x.com", "jo@x.", "jo x.com"])
def test_invalid_email_is_rejected(make_payload, email):
    result = validate_user(make_payload(email=email), now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, "email")]


@pytest.mark.parametrize("phone", [
    "0612345678",
    "06 12 34 56 78",
    "06.12.34.56.78",
    "06-12-34-56-78",
    "+33 6 12 34 56 78",
    "+33612345678",
    "0033 1 23 45 67 89",
])
def test_french_phone_numbers_are_accepted(make_payload, phone):
    assert validate_user(make_payload(phone=phone), now=NOW).ok


@pytest.mark.parametrize("phone", [
    "0012345678",
    "061234567",
    "06123456789",
    "+44 6 12 34 56 78",
    "phone",
    "",
])
def test_invalid_phone_is_rejected(make_payload, phone):
    result = validate_user(make_payload(phone=phone), now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, "phone")]


@pytest.mark.parametrize("phone", ["06 12 34 56 78", "+33 6 12 34 56 78", "0033612345678", "+33 6.12.34.56.78"])
def test_phone_is_stored_in_national_form(make_payload, phone):
    assert validate_user(make_payload(phone=phone), now=NOW).record.phone == "0612345678"


def test_empty_required_strings_count_as_missing(make_payload):
    payload = make_payload(password="", email="")
    payload["identity"]["firstName"] = ""

    result = validate_user(payload, now=NOW)

    assert sorted(kinds(result)) == sorted([
        (ErrorKind.MISSING_REQUIRED_FIELD, "password"),
        (ErrorKind.MISSING_REQUIRED_FIELD, "email"),
        (ErrorKind.MISSING_REQUIRED_FIELD, "identity.firstName"),
    ])
    assert sorted(e.message for e in result.errors) == [
        "Email is required",
        "Password is required",
        "firstName is required",
    ]


def test_blank_email_counts_as_missing(make_payload):
    result = validate_user(make_payload(email="   "), now=NOW)

    assert kinds(result) == [(ErrorKind.MISSING_REQUIRED_FIELD, "email")]


def test_short_password_is_out_of_range(make_payload):
    result = validate_user(make_payload(password="short"), now=NOW)

    assert kinds(result) == [(ErrorKind.OUT_OF_RANGE, "password")]
    assert result.errors[0].message == "Password is too small"


def test_password_of_exactly_eight_characters_is_accepted(make_payload):
    assert validate_user(make_payload(password="12345678"), now=NOW).ok


def test_short_first_name_is_out_of_range(make_payload):
    payload = make_payload()
    payload["identity"]["firstName"] = "J"

    result = validate_user(payload, now=NOW)

    assert kinds(result) == [(ErrorKind.OUT_OF_RANGE, "identity.firstName")]


def test_birthday_after_now_is_out_of_range(make_payload):
    payload = make_payload()
    payload["identity"]["birthdayAt"] = (NOW + timedelta(days=1)).date()

    result = validate_user(payload, now=NOW)

    assert kinds(result) == [(ErrorKind.OUT_OF_RANGE, "identity.birthdayAt")]


def test_birthday_today_is_accepted(make_payload):
    payload = make_payload()
    payload["identity"]["birthdayAt"] = NOW.date()

    assert validate_user(payload, now=NOW).ok


def test_birthday_accepts_datetime_and_iso_string(make_payload):
    payload = make_payload()
    payload["identity"]["birthdayAt"] = datetime(1990, 5, 17, 8, 30)
    assert validate_user(payload, now=NOW).record.identity.birthday_at == date(1990, 5, 17)

    payload["identity"]["birthdayAt"] = "1990-05-17"
    assert validate_user(payload, now=NOW).record.identity.birthday_at == date(1990, 5, 17)


@pytest.mark.parametrize("value", ["1990-05-17T08:30:00.000Z", "1990-05-17T08:30:00", "1990-05-17T01:30:00+02:00"])
def test_birthday_accepts_iso_date_time_strings(make_payload, value):
    payload = make_payload()
    payload["identity"]["birthdayAt"] = value

    result = validate_user(payload, now=NOW)

    assert result.ok
    assert result.record.identity.birthday_at == date(1990, 5, 16 if value.endswith("+02:00") else 17)


def test_birthday_date_time_after_now_is_out_of_range(make_payload):
    payload = make_payload()
    payload["identity"]["birthdayAt"] = "2024-06-16T00:00:00.000Z"

    result = validate_user(payload, now=NOW)

    assert kinds(result) == [(ErrorKind.OUT_OF_RANGE, "identity.birthdayAt")]


def test_stored_record_with_future_birthday_is_still_readable():
    document = {
        "_id": ObjectId(),
        "identity": {"firstName": "Jo", "lastName": "Doe", "birthdayAt": datetime(2999, 1, 1)},
        "email": "jo@x.com",
        "userCategory": {"mainCategory": "doctor", "detailCategory": "practicing"},
    }

    user = UserModel.from_document(document)

    assert user.identity.birthday_at == date(2999, 1, 1)
    assert UserOut.from_model(user).identity.birthday_at == date(2999, 1, 1)


def test_unparseable_birthday_is_invalid_format(make_payload):
    payload = make_payload()
    payload["identity"]["birthdayAt"] = "not a date"

    result = validate_user(payload, now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, "identity.birthdayAt")]


@pytest.mark.parametrize("category, field", [
    ({"mainCategory": "Doctor", "detailCategory": "practicing"}, "userCategory.mainCategory"),
    ({"mainCategory": "surgeon", "detailCategory": "practicing"}, "userCategory.mainCategory"),
    ({"mainCategory": "nurse", "detailCategory": "in study"}, "userCategory.detailCategory"),
])
def test_category_must_be_exact_enum_member(make_payload, category, field):
    result = validate_user(make_payload(userCategory=category), now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, field)]


@pytest.mark.parametrize("main", ["doctor", "veterinarian", "nurse", "pharmacist"])
@pytest.mark.parametrize("detail", ["practicing", "in-study"])
def test_every_category_combination_is_accepted(make_payload, main, detail):
    payload = make_payload(userCategory={"mainCategory": main, "detailCategory": detail})

    assert validate_user(payload, now=NOW).ok


def test_all_violations_are_reported_together(make_payload):
    payload = make_payload(email="nope", password="short", phone="123")
    del payload["userCategory"]

    result = validate_user(payload, now=NOW)

    assert sorted(kinds(result)) == sorted([
        (ErrorKind.INVALID_FORMAT, "email"),
        (ErrorKind.OUT_OF_RANGE, "password"),
        (ErrorKind.INVALID_FORMAT, "phone"),
        (ErrorKind.MISSING_REQUIRED_FIELD, "userCategory"),
    ])


def test_wrong_type_is_invalid_format(make_payload):
    result = validate_user(make_payload(email=42), now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, "email")]


def test_non_object_candidate_is_rejected():
    result = validate_user(["not", "a", "record"], now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, "user")]


def test_address_fields_are_free_text(make_payload):
    address = {"firstAddressField": "12 rue de la Paix", "city": "Paris", "zipCode": "75002", "country": "France"}

    result = validate_user(make_payload(address=address, department="Cardiologie"), now=NOW)

    assert result.ok
    assert result.record.address.zip_code == "75002"


def test_validation_is_idempotent(make_payload):
    first = validate_user(make_payload(phone="+33 6 12 34 56 78"), now=NOW)
    normalized = first.record.model_dump(by_alias=True, exclude_none=True)

    second = validate_user(normalized, now=NOW)
    third = validate_user(normalized, now=NOW)

    assert second.ok and third.ok
    assert second.record == first.record
    assert third.record == second.record


def test_unknown_fields_are_dropped_on_create(make_payload):
    result = validate_user(make_payload(isAdmin=True), now=NOW)

    assert result.ok
    assert "isAdmin" not in result.record.model_dump(by_alias=True)


def test_update_accepts_partial_changes():
    result = validate_user_update({"department": "Urgences", "phone": "06 98 76 54 32"}, now=NOW)

    assert result.ok
    assert result.record.model_dump(by_alias=True, exclude_unset=True) == {
        "department": "Urgences",
        "phone": "0698765432",
    }


@pytest.mark.parametrize("key", ["password", "refreshToken", "createdAt", "_id", "nickname"])
def test_update_rejects_fields_outside_the_updatable_set(key):
    result = validate_user_update({key: "value"}, now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, key)]


def test_update_validates_nested_objects_whole():
    result = validate_user_update({"identity": {"firstName": "Jo"}}, now=NOW)

    assert sorted(kinds(result)) == sorted([
        (ErrorKind.MISSING_REQUIRED_FIELD, "identity.lastName"),
        (ErrorKind.MISSING_REQUIRED_FIELD, "identity.birthdayAt"),
    ])


def test_update_null_clears_optional_fields():
    result = validate_user_update({"phone": None, "address": None, "department": "Urgences"}, now=NOW)

    assert result.ok
    assert result.cleared == ["phone", "address"]
    assert result.record.model_dump(by_alias=True, exclude_unset=True) == {"department": "Urgences"}


@pytest.mark.parametrize("key, field", [
    ("email", "email"),
    ("identity", "identity"),
    ("userCategory", "userCategory"),
    ("user_category", "userCategory"),
])
def test_update_null_on_required_field_is_missing(key, field):
    result = validate_user_update({key: None}, now=NOW)

    assert kinds(result) == [(ErrorKind.MISSING_REQUIRED_FIELD, field)]
    assert result.record is None
    assert result.cleared == []


def test_update_null_on_unknown_field_is_refused():
    result = validate_user_update({"password": None}, now=NOW)

    assert kinds(result) == [(ErrorKind.INVALID_FORMAT, "password")]
    assert result.errors[0].message == "Password cannot be set here"


def test_update_empty_email_is_missing():
    result = validate_user_update({"email": ""}, now=NOW)

    assert kinds(result) == [(ErrorKind.MISSING_REQUIRED_FIELD, "email")]
    assert result.errors[0].message == "Email is required"
