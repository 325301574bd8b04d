from concurrent.futures import ThreadPoolExecutor

import pytest

import services
from errors import ConflictError, InvalidCredentialsError, ValidationError, AuthError
from security import decode_token


def test_register_creates_unverified_user(db):
    user, token = services.register(db, "Acme", "b@x.com", "pw", "brand")

    assert user.verified is False
    assert user.first_paid_collab_done is False
    assert user.role == "brand"
    assert decode_token(token)["id"] == user.id
    assert db.users == [user]


def test_register_stores_hash_not_password(db):
    user, _ = services.register(db, "Acme", "b@x.com", "secret", "brand")
    assert user.password_hash != "secret"
    assert "password_hash" not in user.public().model_dump()


@pytest.mark.parametrize("missing", ["name", "email", "password", "role"])
def test_register_requires_fields(db, missing):
    fields = {"name": "Acme", "email": "b@x.com", "password": "pw", "role": "brand"}
    fields[missing] = None
    with pytest.raises(ValidationError):
        services.register(db, **fields)
    assert db.users == []


def test_register_rejects_unknown_role(db):
    with pytest.raises(ValidationError):
        services.register(db, "Admin", "a@x.com", "pw", "admin")


def test_register_duplicate_email_conflicts(db, brand):
    with pytest.raises(ConflictError):
        services.register(db, "Other", "b@x.com", "pw2", "creator")
    with pytest.raises(ConflictError):
        services.register(db, "Other", "B@X.com", "pw2", "creator")
    assert len(db.users) == 1


def test_login_token_resolves_to_same_user(db, brand):
    user, token = services.login(db, "b@x.com", "pw")
    assert user is brand
    assert services.resolve_token(db, token) is brand


@pytest.mark.parametrize("email,password", [("b@x.com", "wrong"), ("nobody@x.com", "pw"), (None, None)])
def test_login_rejects_bad_credentials(db, brand, email, password):
    with pytest.raises(InvalidCredentialsError) as exc_info:
        services.login(db, email, password)
    assert exc_info.value.status_code == 400


def test_token_for_reset_store_is_rejected(seeded_db):
    _, token = services.login(seeded_db, "riya@demo.com", "pass123")
    seeded_db.reset()
    with pytest.raises(AuthError):
        services.resolve_token(seeded_db, token)


def test_find_by_id_and_email(db, brand):
    assert services.find_by_id(db, brand.id) is brand
    assert services.find_by_email(db, "b@x.com") is brand
    assert services.find_by_id(db, "missing") is None
    assert services.find_by_email(db, "") is None


def test_concurrent_duplicate_registrations_keep_one_user(db):
    def attempt(i):
        try:
            services.register(db, f"Dup {i}", "dup@x.com", "pw", "creator")
            return "ok"
        except ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(8)))

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == 7
    assert [u.email for u in db.users] == ["dup@x.com"]


def test_profile_numbers_are_free_form(db):
    user, _ = services.register(
        db, "Riya", "r@x.com", "pw", "creator", {"followers": "52k", "engagement": "high"}
    )
    assert user.profile.followers == "52k"
    assert user.profile.engagement == "high"
