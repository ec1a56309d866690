import pytest

from portal.auth.session import UserSummary
from portal.auth.users import UserRecord
from portal.errors import DuplicateEmail, HashingError, InvalidCredentials, UserNotFound, ValidationError
from portal.infra.db import SessionRow, UserRow


@pytest.mark.parametrize(
    "name,email,password",
    [
        ("Ann", "ann@x.com", "secret1"),
        ("B" * 50, "b.long-name+tag@example.org", "123456"),
        ("  Carla  ", "carla@sub.domain.io", "a much longer passphrase"),
    ],
)
def test_signup_then_login(auth, name, email, password):
    s1 = auth.signup(name, email, password)
    s2 = auth.login(email, password)
    assert s1 != s2
    summary = auth.sessions.get(s2)
    assert summary.email == email
    assert summary.name == name.strip()


def test_signup_stores_hash_not_plaintext(auth, user_store, hasher):
    auth.signup("Ann", "ann@x.com", "secret1")
    stored = user_store.find_by_email("ann@x.com")
    assert stored.password_hash != "secret1"
    assert hasher.verify("secret1", stored.password_hash)


def test_signup_duplicate_email(auth, count_rows):
    auth.signup("Ann", "ann@x.com", "secret1")
    sessions_before = count_rows(SessionRow)
    with pytest.raises(DuplicateEmail):
        auth.signup("Impostor", "ann@x.com", "other-pass")
    assert count_rows(UserRow) == 1
    assert count_rows(SessionRow) == sessions_before


@pytest.mark.parametrize(
    "name,email,password,field",
    [
        ("", "ann@x.com", "secret1", "name"),
        ("   ", "ann@x.com", "secret1", "name"),
        ("A" * 51, "ann@x.com", "secret1", "name"),
        ("Ann", "not-an-email", "secret1", "email"),
        ("Ann", "", "secret1", "email"),
        ("Ann", "ann@x.com", "12345", "password"),
        # first violated field wins
        ("", "bad", "1", "name"),
        ("Ann", "bad", "1", "email"),
    ],
)
def test_signup_validation(auth, count_rows, name, email, password, field):
    with pytest.raises(ValidationError) as exc:
        auth.signup(name, email, password)
    assert exc.value.field == field
    assert exc.value.message
    assert count_rows(UserRow) == 0
    assert count_rows(SessionRow) == 0


def test_signup_validation_messages(auth):
    with pytest.raises(ValidationError, match="at most 50"):
        auth.signup("A" * 51, "ann@x.com", "secret1")
    with pytest.raises(ValidationError, match="at least 6"):
        auth.signup("Ann", "ann@x.com", "12345")


@pytest.mark.parametrize(
    "email,password,field",
    [
        ("not-an-email", "secret1", "email"),
        ("ann@x.com", "", "password"),
    ],
)
def test_login_validation(auth, email, password, field):
    with pytest.raises(ValidationError) as exc:
        auth.login(email, password)
    assert exc.value.field == field


def test_login_unknown_email(auth, count_rows):
    with pytest.raises(UserNotFound):
        auth.login("ghost@x.com", "secret1")
    assert count_rows(SessionRow) == 0


def test_login_wrong_password(auth, count_rows):
    auth.register("Ann", "ann@x.com", "secret1")
    with pytest.raises(InvalidCredentials):
        auth.login("ann@x.com", "wrong")
    assert count_rows(SessionRow) == 0


def test_register_does_not_open_session(auth, count_rows):
    user = auth.register("Ann", "ann@x.com", "secret1")
    assert user.email == "ann@x.com"
    assert count_rows(SessionRow) == 0


def test_login_with_malformed_stored_digest_is_internal_error(auth, user_store):
    user_store.create(UserRecord(name="Ann", email="ann@x.com", password_hash="garbage"))
    with pytest.raises(HashingError):
        auth.login("ann@x.com", "secret1")


def test_session_summary_is_a_snapshot(auth, database):
    sid = auth.signup("Ann", "ann@x.com", "secret1")
    with database.session_scope() as s:
        s.get(UserRow, "ann@x.com").name = "Renamed"
    assert auth.sessions.get(sid).name == "Ann"


def test_logout_is_idempotent(auth):
    sid = auth.signup("Ann", "ann@x.com", "secret1")
    auth.logout(sid)
    auth.logout(sid)
    auth.logout("unknown")
    assert auth.sessions.get(sid) is None


def test_session_expires(auth, clock):
    sid = auth.signup("Ann", "ann@x.com", "secret1")
    clock.advance(3601)
    assert auth.sessions.get(sid) is None


def test_ann_scenario(auth):
    ann = UserSummary(name="Ann", email="ann@x.com")

    s1 = auth.signup("Ann", "ann@x.com", "secret1")
    assert auth.sessions.get(s1) == ann

    with pytest.raises(InvalidCredentials):
        auth.login("ann@x.com", "wrong")

    s2 = auth.login("ann@x.com", "secret1")
    assert s2 != s1
    assert auth.sessions.get(s1) == ann
    assert auth.sessions.get(s2) == ann

    auth.logout(s1)
    assert auth.sessions.get(s1) is None
    assert auth.sessions.get(s2) == ann


def test_email_is_stored_as_entered(auth, user_store):
    sid = auth.signup("Bob", "bob@EXAMPLE.org", "secret1")
    assert auth.sessions.get(sid).email == "bob@EXAMPLE.org"
    assert user_store.find_by_email("bob@EXAMPLE.org").email == "bob@EXAMPLE.org"
    s2 = auth.login("bob@EXAMPLE.org", "secret1")
    assert auth.sessions.get(s2).email == "bob@EXAMPLE.org"


def test_email_surrounding_whitespace_is_stripped(auth):
    sid = auth.signup("Ann", "  ann@x.com ", "secret1")
    assert auth.sessions.get(sid).email == "ann@x.com"


@pytest.mark.parametrize("email", ["Ann <ann2@x.com>", "<ann2@x.com>"])
def test_display_name_address_rejected(auth, count_rows, email):
    with pytest.raises(ValidationError) as exc:
        auth.signup("Ann", email, "secret1")
    assert exc.value.field == "email"
    assert count_rows(UserRow) == 0
    with pytest.raises(ValidationError):
        auth.login(email, "secret1")


def test_login_empty_password_message(auth):
    with pytest.raises(ValidationError) as exc:
        auth.login("ann@x.com", "")
    assert exc.value.message == "Password is required"
