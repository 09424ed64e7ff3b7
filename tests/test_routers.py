import json

import pytest
from fastapi.testclient import TestClient

import models
from conftest import OWNER, FakeGemini
from database import engine
from main import app
from routers.utils import get_gemini_service
from services.exceptions import AllModelsExhaustedError, ModelFailure

ADVICE_TEXT = json.dumps({
    "advice": "Cook at home on weekdays",
    "savingsGoal": "₹50",
    "focusArea": "food",
    "reductionPercentage": 12,
})


@pytest.fixture
def gemini():
    return FakeGemini(text=ADVICE_TEXT)


@pytest.fixture
def client(gemini):
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_gemini_service] = lambda: gemini
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def add(client, name, amount, type_, date="2024-03-05T10:00:00", category=None, email=OWNER):
    body = {"name": name, "amount": amount, "type": type_, "email": email, "date": date}
    if category is not None:
        body["category"] = category
    return client.post("/api/transactions/", json=body)


def seed_scenario(client):
    add(client, "Groceries", 100, "expense", category="food")
    add(client, "Rent", 800, "expense", category="rent", date="2024-03-01T09:00:00")
    add(client, "Salary", 2000, "income", category="salary", date="2024-03-28T09:00:00")


# ---- transactions ------------------------------------------------------------

def test_root(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


def test_same_name_in_same_month_is_merged(client) -> None:
    first = add(client, "Coffee", 4.5, "expense", category="food")
    second = add(client, "Coffee", 3.0, "expense", date="2024-03-20T08:00:00")
    other_month = add(client, "Coffee", 2.0, "expense", date="2024-04-02T08:00:00")

    assert first.status_code == 201
    assert first.json()["message"] == "Transaction added"
    assert second.status_code == 200
    assert second.json()["message"] == "Transaction updated"
    assert second.json()["transaction"]["amount"] == 7.5
    assert second.json()["transaction"]["transaction_id"] == first.json()["transaction"]["transaction_id"]
    assert other_month.status_code == 201


def test_list_is_newest_first_and_scoped_to_owner(client) -> None:
    seed_scenario(client)
    add(client, "Stranger", 5, "expense", email="b@x.com")

    response = client.get("/api/transactions/", params={"email": OWNER})

    assert response.status_code == 200
    assert [txn["name"] for txn in response.json()] == ["Salary", "Groceries", "Rent"]


def test_missing_email_is_rejected(client) -> None:
    response = client.get("/api/transactions/")

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Email is required"


def test_filter_by_type(client) -> None:
    seed_scenario(client)

    income = client.get("/api/transactions/income", params={"email": OWNER})
    invalid = client.get("/api/transactions/savings", params={"email": OWNER})

    assert [txn["name"] for txn in income.json()] == ["Salary"]
    assert invalid.status_code == 400


def test_update_requires_ownership(client) -> None:
    created = add(client, "Bus pass", 40, "expense", category="transport").json()["transaction"]
    body = {"name": "Bus pass", "amount": 45, "type": "expense", "date": "2024-03-05T10:00:00", "category": "transport"}

    stranger = client.put(f"/api/transactions/{created['transaction_id']}", json=dict(body, email="b@x.com"))
    owner = client.put(f"/api/transactions/{created['transaction_id']}", json=dict(body, email=OWNER))

    assert stranger.status_code == 404
    assert owner.status_code == 200
    assert owner.json()["transaction"]["amount"] == 45


def test_mixed_case_domain_matches_stored_email(client) -> None:
    created = add(client, "Lunch", 12, "expense", email="Bob@Example.COM").json()["transaction"]
    params = {"email": "Bob@Example.COM"}

    listed = client.get("/api/transactions/", params=params)
    by_type = client.get("/api/transactions/expense", params=params)
    summary = client.get("/api/transactions/summary/monthly", params=params)
    deleted = client.delete(f"/api/transactions/{created['transaction_id']}", params=params)

    assert created["email"] == "Bob@example.com"
    assert [txn["name"] for txn in listed.json()] == ["Lunch"]
    assert [txn["name"] for txn in by_type.json()] == ["Lunch"]
    assert summary.json()["2024-03"]["expense"] == 12
    assert deleted.status_code == 200


def test_malformed_email_query_is_rejected(client) -> None:
    response = client.get("/api/transactions/", params={"email": "not-an-email"})

    assert response.status_code == 400
    assert response.json()["detail"]["error"].startswith("Invalid email address")


def test_delete(client) -> None:
    created = add(client, "Gym", 30, "expense").json()["transaction"]
    url = f"/api/transactions/{created['transaction_id']}"

    first = client.delete(url, params={"email": OWNER})
    second = client.delete(url, params={"email": OWNER})

    assert first.status_code == 200
    assert first.json() == {"message": "Transaction deleted"}
    assert second.status_code == 404


def test_monthly_summary(client) -> None:
    seed_scenario(client)
    add(client, "Books", 25, "expense", date="2024-04-10T10:00:00")

    response = client.get("/api/transactions/summary/monthly", params={"email": OWNER})

    body = response.json()
    assert set(body) == {"2024-03", "2024-04"}
    assert body["2024-03"]["income"] == 2000
    assert body["2024-03"]["expense"] == 900
    assert len(body["2024-03"]["transactions"]) == 3
    assert body["2024-04"]["expense"] == 25


# ---- budget and advice -------------------------------------------------------

def test_budget_suggestion_fallback_is_still_ok(client, gemini) -> None:
    seed_scenario(client)
    gemini.text = "not json at all"

    response = client.get("/api/budget/suggestion", params={"email": OWNER, "month": 3, "year": 2024})

    assert response.status_code == 200
    body = response.json()
    assert body["_warning"]
    assert body["monthlySummary"] == {
        "month": 3,
        "year": 2024,
        "totalIncome": 2000.0,
        "totalExpenses": 900.0,
        "netSavings": 1100.0,
    }
    assert {rec["category"]: rec["recommendedBudget"] for rec in body["budgetRecommendations"]} == {
        "food": 90.0,
        "rent": 720.0,
    }
    assert body["monthContext"]["analyzedCategories"] == ["food", "rent"]


def test_financial_advice(client) -> None:
    seed_scenario(client)

    response = client.get("/api/insights/advice", params={"email": OWNER, "month": "3", "year": "2024"})

    assert response.status_code == 200
    body = response.json()
    assert body["focusArea"] == "food"
    assert body["reductionPercentage"] == 12
    assert body["_context"] == {"month": 3, "year": 2024, "totalExpenses": 900.0}
    assert "_warning" not in body


@pytest.mark.parametrize(
    "params",
    [
        {"email": OWNER, "month": 13, "year": 2024},
        {"email": OWNER, "year": 2024},
        {"month": 3, "year": 2024},
        {"email": "nobody", "month": 3, "year": 2024},
    ],
)
def test_bad_requests(client, params) -> None:
    response = client.get("/api/budget/suggestion", params=params)

    assert response.status_code == 400
    assert response.json()["detail"]["error"]


def test_no_transactions_is_not_found(client) -> None:
    response = client.get("/api/insights/advice", params={"email": OWNER, "month": 3, "year": 2024})

    assert response.status_code == 404
    assert response.json()["detail"]["suggestion"] == "Try a different month or add transactions first"


def test_exhausted_models_are_bad_gateway(client, gemini) -> None:
    seed_scenario(client)
    gemini.error = AllModelsExhaustedError([ModelFailure("models/gemini-2.5-flash", "rest", "500")])

    response = client.get("/api/budget/suggestion", params={"email": OWNER, "month": 3, "year": 2024})

    assert response.status_code == 502
    assert response.json()["detail"]["details"] == [
        {"model": "models/gemini-2.5-flash", "mode": "rest", "reason": "500"}
    ]
