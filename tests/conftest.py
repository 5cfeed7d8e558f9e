"""Shared fixtures: complete, valid drafts for each step."""

from datetime import date
from decimal import Decimal

import pytest

from benefits_intake.config import IntakeConfig, PrefillConfig
from benefits_intake.models.enums import Relationship

SELF_ID = "member-self"
SPOUSE_ID = "member-spouse"
CHILD_ID = "member-child"


def make_member(member_id, relationship, first, last, **overrides):
    """A household member draft that passes validation."""
    member = {
        "id": member_id,
        "name": {"first": first, "middle": None, "last": last},
        "relationship": relationship,
        "date_of_birth": date(1990, 5, 17),
        "gender": "Female",
        "citizenship": True,
        "residency_date": date(2015, 1, 1),
        "marital_status": "Married",
        "education_level": "High school/GED",
    }
    member.update(overrides)
    return member


@pytest.fixture
def applicant_data():
    return {
        "name": {"first": "Jane", "middle": None, "last": "Doe"},
        "street_address": "123 Main St",
        "city": "Richmond",
        "county": "Henrico",
        "zip": "23219",
        "mailing_address_same": True,
        "email": "jane.doe@example.com",
        "primary_phone": "(804) 555-0100",
        "primary_language": "English",
        "correspondence_preference": "email",
    }


@pytest.fixture
def household_data():
    return {
        "members": [
            make_member(SELF_ID, Relationship.SELF, "Jane", "Doe", applying_for_benefits=True),
            make_member(SPOUSE_ID, Relationship.SPOUSE, "John", "Doe", gender="Male"),
            make_member(
                CHILD_ID,
                Relationship.CHILD,
                "Jimmy",
                "Doe",
                gender="Male",
                date_of_birth=date(2016, 3, 2),
                marital_status="Single",
                education_level="Less than high school",
            ),
        ],
    }


@pytest.fixture
def income_data():
    return {
        "has_earned_income": True,
        "sources": [
            {
                "id": "income-1",
                "person_id": SELF_ID,
                "source_type": "work",
                "employer_name": "Acme Corp",
                "amount": Decimal("1200.00"),
                "frequency": "biweekly",
            },
            {
                "id": "income-2",
                "person_id": SPOUSE_ID,
                "source_type": "SSI",
                "amount": Decimal("914.00"),
                "frequency": "monthly",
            },
        ],
    }


@pytest.fixture
def resources_data():
    return {
        "assets": [
            {
                "id": "asset-1",
                "type": "Checking Account",
                "owner_ids": [SELF_ID, SPOUSE_ID],
                "institution": "First Bank",
                "balance": Decimal("850.25"),
            },
        ],
    }


@pytest.fixture
def review_data():
    return {
        "truthfulness": True,
        "change_reporting": True,
        "penalties": True,
        "consent_to_data_sharing": True,
        "completed_by_self": True,
        "signature": "Jane Doe",
        "signature_date": date(2026, 10, 1),
    }


@pytest.fixture
def config():
    """Configuration with prefill latency removed so tests run fast."""
    return IntakeConfig(env="test", prefill=PrefillConfig(simulated_latency=0))
