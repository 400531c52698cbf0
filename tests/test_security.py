# tests/test_security.py

from datetime import timedelta

import bcrypt
import pytest
from bson import ObjectId

from repairhub.models.message import claim_notice
from repairhub.models.repair import RepairStatus, can_transition, transition_error
from repairhub.models.user import UserRole
from repairhub.services.auth import AuthService
from repairhub.utils.cache import PRIVATE, cache_headers
from repairhub.utils.security import (
    JWTError,
    create_access_token,
    decode_access_token,
    hash_password,
    token_subject,
    verify_password,
)

def test_password_hash_roundtrip():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong-pass", hashed)

def test_verify_password_rejects_missing_or_plain_hash():
    assert not verify_password("secret123", None)
    assert not verify_password("secret123", "not-a-bcrypt-hash")

def test_token_carries_subject_and_role():
    user_id = str(ObjectId())
    token = create_access_token({"sub": user_id, "role": "technician"})
    payload = decode_access_token(token)
    assert token_subject(payload) == user_id
    assert payload["role"] == "technician"
    assert "exp" in payload and "iat" in payload

def test_expired_token_is_rejected():
    token = create_access_token({"sub": str(ObjectId())}, expires_delta=timedelta(seconds=-10))
    with pytest.raises(JWTError):
        decode_access_token(token)

def test_token_subject_accepts_legacy_claims():
    assert token_subject({"userId": "abc"}) == "abc"
    assert token_subject({"id": "xyz"}) == "xyz"
    assert token_subject({}) is None

def test_auth_service_verify():
    service = AuthService()
    user_id = str(ObjectId())

    context = service.verify(create_access_token({"sub": user_id, "role": "user"}))
    assert context.user_id == user_id
    assert context.role == UserRole.CUSTOMER

    assert service.verify("garbage") is None
    assert service.verify(None) is None
    assert service.verify(create_access_token({"sub": "not-an-object-id"})) is None

def test_role_parsing_and_landing_pages():
    assert UserRole.parse("technician") == UserRole.TECHNICIAN
    assert UserRole.parse("user") == UserRole.CUSTOMER
    assert UserRole.parse(None) == UserRole.CUSTOMER
    assert UserRole.ADMIN.landing_page == "/technician"
    assert UserRole.CUSTOMER.landing_page == "/dashboard"

def test_status_transitions():
    assert can_transition("Pending", RepairStatus.ASSIGNED)
    assert can_transition("Assigned", RepairStatus.COMPLETED)
    assert can_transition("Completed", RepairStatus.COMPLETED)
    assert not can_transition("Completed", RepairStatus.PENDING)
    assert not can_transition("Cancelled", RepairStatus.IN_PROGRESS)
    assert RepairStatus.from_value("In Progress") == RepairStatus.IN_PROGRESS
    assert RepairStatus.from_value("Broken") is None

def test_claim_notice_text():
    assert claim_notice("tech", "Laptop") == (
        'tech has accepted your repair request for "Laptop". '
        "I will review the details and get back to you shortly!"
    )

def test_private_cache_headers():
    headers = cache_headers(PRIVATE)
    assert headers["Cache-Control"] == "private, no-cache, no-store, must-revalidate"
    assert headers["Pragma"] == "no-cache"
    assert headers["Expires"] == "0"

def test_long_passwords_are_not_truncated():
    hashed = hash_password("x" * 80 + "1")
    assert verify_password("x" * 80 + "1", hashed)
    assert not verify_password("x" * 80 + "2", hashed)

def test_verify_accepts_raw_bcrypt_hashes():
    legacy = bcrypt.hashpw(b"secret123", bcrypt.gensalt(rounds=4)).decode()
    assert verify_password("secret123", legacy)
    assert not verify_password("secret124", legacy)

def test_transition_rules_depend_on_technician():
    assert transition_error("Pending", RepairStatus.ASSIGNED, False) == "Only a claim can assign a repair"
    assert transition_error("Pending", RepairStatus.COMPLETED, False) == "Repair has no technician yet"
    assert transition_error("Pending", RepairStatus.IN_PROGRESS, False) == "Repair has no technician yet"
    assert transition_error("Pending", RepairStatus.CANCELLED, False) is None
    assert transition_error("Assigned", RepairStatus.ASSIGNED, True) is None
    assert transition_error("Assigned", RepairStatus.IN_PROGRESS, True) is None
    assert transition_error("In Progress", RepairStatus.PENDING, True) == "Cannot reopen a claimed repair"
    assert transition_error("Completed", RepairStatus.PENDING, True) == "Cannot change status of a Completed repair"
