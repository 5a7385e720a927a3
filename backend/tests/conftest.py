"""Shared fixtures for the member sync test suite."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from models import MemberFields
from sheets.credentials import ServiceAccountCredentials


@pytest.fixture(scope="session")
def rsa_key_pair():
    """(private_pem, public_pem) for signing test assertions."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def service_account(rsa_key_pair):
    private_pem, _ = rsa_key_pair
    return ServiceAccountCredentials(
        client_email="sync@member-project.iam.gserviceaccount.com",
        private_key=private_pem,
        token_uri="https://oauth2.example.test/token",
        private_key_id="key-1",
    )


@pytest.fixture
def member_fields():
    return MemberFields(
        tel="0912-345-678",
        topic="Design",
        keyword="ux",
        title="Lead",
        social_link="@amy",
    )


@pytest.fixture
def sheet_rows():
    """Worksheet contents, header row first."""
    return [
        ["Email", "Tel", "Topic", "Keyword", "Title", "IG Link"],
        ["amy@example.com", "0911", "Art", "paint", "Painter", "@amy"],
        ["  Bob@Example.com ", "0922", "Music"],
        ["amy@example.com", "0933", "Duplicate", "", "", ""],
    ]
