# This project was developed with assistance from AI tools.
"""Tests for the read-only loan endpoints."""

from decimal import Decimal

from walletbot.enums import Region, Role

from .factories import approved_loan, make_loan


def test_list_empty(client):
    resp = client.get("/api/loans")
    assert resp.status_code == 200
    body = resp.json()
    assert body["data"] == []
    assert body["pagination"] == {"total": 0, "offset": 0, "limit": 20, "has_more": False}


def test_list_filters_by_region(client, ledger):
    make_loan(ledger, applicant_id="a", region=Region.REGION_A)
    make_loan(ledger, applicant_name="Chipo", applicant_id="b", region=Region.REGION_B)

    resp = client.get("/api/loans", params={"region": "region_b"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [item["applicant_name"] for item in data] == ["Chipo"]
    assert data[0]["region"] == "region_b"


def test_list_filters_by_applicant(client, ledger):
    make_loan(ledger, applicant_name="Tendai", applicant_id="a")
    make_loan(ledger, applicant_name="Chipo", applicant_id="b")

    data = client.get("/api/loans", params={"applicant": "tendai"}).json()["data"]
    assert [item["id"] for item in data] == ["L0001"]


def test_list_paginates(client, ledger):
    for n in range(5):
        make_loan(ledger, applicant_id=f"id-{n}")

    body = client.get("/api/loans", params={"offset": 2, "limit": 2}).json()
    assert [item["id"] for item in body["data"]] == ["L0003", "L0004"]
    assert body["pagination"]["total"] == 5
    assert body["pagination"]["has_more"] is True


def test_list_rejects_bad_limit(client):
    resp = client.get("/api/loans", params={"limit": 0})
    assert resp.status_code == 422
    assert resp.json()["title"] == "Unprocessable Entity"


def test_get_loan(client, ledger):
    loan = approved_loan(ledger)
    ledger.approve(loan.id, "elder-1", Role.ELDER)
    ledger.recommend(loan.id, "rudo", Region.REGION_A)

    resp = client.get(f"/api/loans/{loan.id}")
    assert resp.status_code == 200
    item = resp.json()["data"]
    assert item["status"] == "approved"
    assert Decimal(item["approved_limit"]) == Decimal("600")
    assert item["term_months"] == 6
    assert item["elder_approval_count"] == 1
    assert item["recommendation_count"] == 1


def test_get_unknown_loan_is_problem_details(client):
    resp = client.get("/api/loans/L9999", headers={"X-Request-ID": "req-42"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["title"] == "Not Found"
    assert body["status"] == 404
    assert "L9999" in body["detail"]
    assert body["request_id"] == "req-42"
