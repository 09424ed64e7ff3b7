"""Shared fixtures. Environment is pinned before any app module is imported."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ.pop("INSTANCE_CONNECTION_NAME", None)

from datetime import datetime  # noqa: E402
from typing import List, Optional  # noqa: E402

import pytest  # noqa: E402

from config import Settings  # noqa: E402
from services.aggregator import PeriodWindow, aggregate  # noqa: E402
from services.gemini_service import BackendKind, ModelCallResult  # noqa: E402
from services.transaction_store import TransactionRecord  # noqa: E402

OWNER = "a@x.com"


def make_record(
    amount: float,
    kind: str,
    category: Optional[str] = None,
    name: Optional[str] = None,
    occurred_at: datetime = datetime(2024, 3, 15),
) -> TransactionRecord:
    return TransactionRecord(
        owner_id=OWNER,
        name=name if name is not None else (category or ""),
        amount=amount,
        kind=kind,
        occurred_at=occurred_at,
        category=category,
    )


class FakeStore:
    """In-memory TransactionStore."""

    def __init__(self, records: List[TransactionRecord]):
        self.records = records
        self.calls = []

    def find(self, owner_id, start, end):
        self.calls.append((owner_id, start, end))
        return [
            record for record in self.records
            if record.owner_id == owner_id and start <= record.occurred_at <= end
        ]


class FakeGemini:
    """Returns canned model text in the REST response shape."""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.prompts = []
        self.models = []

    async def generate(self, candidate_models, prompt):
        self.models.append(list(candidate_models))
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        payload = {"candidates": [{"content": {"parts": [{"text": self.text}]}}]}
        return ModelCallResult(BackendKind.REST, "models/gemini-2.5-flash", payload)


@pytest.fixture
def settings() -> Settings:
    return Settings(gemini_api_key="test-key", currency_symbol="₹")


@pytest.fixture
def scenario_records() -> List[TransactionRecord]:
    return [
        make_record(100, "expense", "food"),
        make_record(800, "expense", "rent"),
        make_record(2000, "income", "salary"),
    ]


@pytest.fixture
def snapshot(scenario_records):
    return aggregate(scenario_records, PeriodWindow(month=3, year=2024))
