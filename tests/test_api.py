import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from quote_tool.api.main import app
from quote_tool.api.state import get_catalog_service, get_quote_service

PRODUCT = {
    "name": "Cloud CRM",
    "category": "Software",
    "setup_fee": 50,
    "pricing_plans": [
        {"name": "Basic", "pricing_options": [
            {"frequency": "Monthly", "price": 100},
            {"frequency": "Yearly", "price": 1000},
        ]},
    ],
    "add_ons": [{"name": "Support", "additional_cost": 20, "frequency": "Monthly"}],
}

QUOTE = {
    "client_name": "Ada Lovelace",
    "company_name": "Analytical Engines",
    "quote_reference": "AE-001",
    "product_configurations": [
        {"product_id": "1", "plan_id": "1", "frequency": "Monthly", "include_setup_cost": True,
         "selected_add_on_ids": ["1"]},
    ],
    "custom_requirements": [{"name": "Training", "price": 200, "frequency": "One-time"}],
    "discounts": [{"type": "fixed", "value": 20}],
}


@pytest.fixture
def client(catalog_service, quote_service):
    app.dependency_overrides[get_catalog_service] = lambda: catalog_service
    app.dependency_overrides[get_quote_service] = lambda: quote_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def product(client):
    response = client.post("/api/products", json=PRODUCT)
    assert response.status_code == 201
    return response.json()


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_product_crud(client, product):
    assert product["id"] == "1"
    assert product["pricing_plans"][0]["id"] == "1"
    assert product["pricing_plans"][0]["pricing_options"][1]["id"] == "2"

    assert client.get("/api/products/1").json()["name"] == "Cloud CRM"
    assert len(client.get("/api/products", params={"category": "Software"}).json()) == 1

    updated = client.put("/api/products/1", json=dict(PRODUCT, name="Cloud CRM Pro"))
    assert updated.status_code == 200
    assert updated.json()["name"] == "Cloud CRM Pro"

    assert client.delete("/api/products/1").status_code == 200
    assert client.get("/api/products/1").status_code == 404


def test_product_errors(client):
    assert client.get("/api/products/42").status_code == 404
    assert client.put("/api/products/42", json=PRODUCT).status_code == 404
    assert client.delete("/api/products/42").status_code == 404

    invalid = dict(PRODUCT, pricing_plans=[{"name": "Basic", "pricing_options": [{"frequency": "Weekly"}]}])
    response = client.post("/api/products", json=invalid)
    assert response.status_code == 400
    assert "unknown frequency" in response.json()["detail"]

    assert client.post("/api/products", json=dict(PRODUCT, setup_fee=-1)).status_code == 422


def test_calculate(client, product):
    response = client.post("/calculate", json=QUOTE)

    assert response.status_code == 200
    body = response.json()
    # 100 plan + 50 setup + 20 add-on + 200 requirement - 20 fixed
    assert body["breakdown"]["total"] == pytest.approx(350.0)
    assert body["periods"]["one_time"] == pytest.approx(230.0)
    assert body["periods"]["monthly"] == pytest.approx(120.0)
    assert body["warnings"] == []


def test_calculate_reports_dangling_references(client):
    response = client.post("/calculate", json=QUOTE)

    body = response.json()
    assert body["breakdown"]["products"] == 0.0
    assert body["breakdown"]["custom_requirements"] == 200.0
    assert body["warnings"]


def test_quote_lifecycle(client, product):
    created = client.post("/api/quotes", json=QUOTE)
    assert created.status_code == 201
    quote = created.json()
    assert quote["status"] == "draft"
    assert quote["quotation_number"] is None

    edited = client.put(f"/api/quotes/{quote['id']}", json=dict(QUOTE, quote_reference="AE-002"))
    assert edited.status_code == 200
    assert edited.json()["quote_reference"] == "AE-002"

    generated = client.post(f"/api/quotes/{quote['id']}/generate")
    assert generated.status_code == 200
    assert generated.json()["status"] == "generated"
    assert generated.json()["quotation_number"].startswith("Q-")

    again = client.post(f"/api/quotes/{quote['id']}/generate")
    assert again.status_code == 409
    assert again.json()["detail"]["error"] == "InvalidStateTransition"
    assert again.json()["detail"]["retryable"] is False

    assert client.put(f"/api/quotes/{quote['id']}", json=QUOTE).status_code == 409
    assert client.delete(f"/api/quotes/{quote['id']}").status_code == 409

    duplicate = client.post(f"/api/quotes/{quote['id']}/duplicate")
    assert duplicate.status_code == 201
    assert duplicate.json()["status"] == "draft"
    assert duplicate.json()["quote_reference"] == "AE-002 (Copy)"

    assert client.delete(f"/api/quotes/{duplicate.json()['id']}").status_code == 200


def test_create_and_generate(client, product):
    response = client.post("/api/quotes", params={"generate": True}, json=QUOTE)

    assert response.status_code == 201
    assert response.json()["quotation_number"].endswith("-001")


def test_quote_not_found(client):
    assert client.get("/api/quotes/missing").status_code == 404
    assert client.put("/api/quotes/missing", json=QUOTE).status_code == 404
    assert client.delete("/api/quotes/missing").status_code == 404
    assert client.post("/api/quotes/missing/generate").status_code == 404
    assert client.post("/api/quotes/missing/duplicate").status_code == 404
    assert client.get("/api/quotes/missing/pricing").status_code == 404


def test_list_quotes(client, product):
    client.post("/api/quotes", json=QUOTE)
    client.post("/api/quotes", json=dict(QUOTE, client_name="Charles Babbage"))

    assert len(client.get("/api/quotes").json()) == 2
    assert len(client.get("/api/quotes", params={"search": "babbage", "field": "clientName"}).json()) == 1
    assert client.get("/api/quotes", params={"search": "x", "field": "nope"}).status_code == 400
    assert client.get("/api/quotes", params={"status": "bogus"}).status_code == 400
    assert client.get("/api/quotes/stats").json() == {"total": 2, "draft": 2, "generated": 0}


def test_quote_pricing(client, product):
    quote = client.post("/api/quotes", json=QUOTE).json()

    body = client.get(f"/api/quotes/{quote['id']}/pricing").json()

    assert body["breakdown"]["total"] == pytest.approx(350.0)
    assert [line["section"] for line in body["lines"]][-1] == "Overall Discounts"


def test_export(client, product):
    quote = client.post("/api/quotes", json=QUOTE).json()

    csv_response = client.get(f"/api/quotes/{quote['id']}/export", params={"format": "csv"})
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert "Cloud CRM - Basic" in csv_response.text

    xlsx_response = client.get(f"/api/quotes/{quote['id']}/export", params={"format": "xlsx"})
    assert xlsx_response.status_code == 200
    assert xlsx_response.content[:2] == b"PK"
    assert "attachment" in xlsx_response.headers["content-disposition"]

    assert client.get(f"/api/quotes/{quote['id']}/export", params={"format": "pdf"}).status_code == 400


def test_company_profile(client):
    assert client.get("/api/company").json()["default_currency"] == "USD"

    saved = client.put("/api/company", json={"company_name": "Acme", "default_currency": "EUR"})

    assert saved.status_code == 200
    assert client.get("/api/company").json()["company_name"] == "Acme"


def test_system_status(client, product):
    body = client.get("/system/status").json()

    assert body["engine_active"] is True
    assert body["catalog"]["total"] == 1
