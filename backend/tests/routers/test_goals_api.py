# backend/tests/routers/test_goals_api.py
"""
Tests for the Goals and Family Transfers APIs.
"""

from decimal import Decimal


class TestGoalsAPI:

    def test_create(self, client):
        response = client.post("/goals/", json={"name": " Emergency Fund ", "target_amount": "100000"})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Emergency Fund"
        assert Decimal(data["progress"]) == Decimal("0")

    def test_create_with_negative_target_is_422(self, client):
        assert client.post("/goals/", json={"name": "Car", "target_amount": "-1"}).status_code == 422

    def test_contribute_from_account(self, client, account, state):
        goal_id = client.post("/goals/", json={"name": "Emergency", "target_amount": "100000"}).json()["id"]

        response = client.post(f"/goals/{goal_id}/contribute", json={
            "amount": "25000",
            "account_id": account.id,
            "date": "2026-03-02",
        })

        assert response.status_code == 200
        assert Decimal(response.json()["current_amount"]) == Decimal("25000")
        assert Decimal(response.json()["progress"]) == Decimal("25")
        assert state.data.get_account(account.id).balance == Decimal("75000")
        assert state.data.ledger[0].category == "Goals"

    def test_contribute_more_than_balance_is_409(self, client, account, state):
        goal_id = client.post("/goals/", json={"name": "House", "target_amount": "5000000"}).json()["id"]

        response = client.post(f"/goals/{goal_id}/contribute", json={
            "amount": "150000",
            "account_id": account.id,
        })

        assert response.status_code == 409
        assert state.data.goals[0].current_amount == Decimal("0")

    def test_contribute_to_missing_goal(self, client):
        response = client.post("/goals/8/contribute", json={"amount": "1"})

        assert response.status_code == 404

    def test_list_reports_progress(self, client):
        client.post("/goals/", json={"name": "Trip", "target_amount": "1000", "current_amount": "1500"})

        goals = client.get("/goals/").json()

        assert len(goals) == 1
        assert Decimal(goals[0]["progress"]) == Decimal("100")

    def test_delete(self, client, state):
        goal_id = client.post("/goals/", json={"name": "Trip", "target_amount": "1000"}).json()["id"]

        assert client.delete(f"/goals/{goal_id}").status_code == 204
        assert state.data.goals == []


class TestFamilyTransfersAPI:

    def test_create_debits_account(self, client, account, state):
        response = client.post("/family-transfers/", json={
            "date": "2026-03-02",
            "recipient": "Mom",
            "relationship": "Mother",
            "amount": "10000",
            "account_id": account.id,
        })

        assert response.status_code == 201
        assert response.json()["recipient"] == "Mom"
        assert state.data.get_account(account.id).balance == Decimal("90000")
        assert state.data.ledger[0].description == "Family Transfer - Mom"

    def test_without_account(self, client, state):
        response = client.post("/family-transfers/", json={
            "date": "2026-03-02",
            "recipient": "Brother",
            "amount": "500",
        })

        assert response.status_code == 201
        assert state.data.ledger == []

    def test_insufficient_funds(self, client, account):
        response = client.post("/family-transfers/", json={
            "date": "2026-03-02",
            "recipient": "Mom",
            "amount": "100001",
            "account_id": account.id,
        })

        assert response.status_code == 409
        assert client.get("/family-transfers/").json() == []

    def test_date_is_required(self, client):
        response = client.post("/family-transfers/", json={"recipient": "Mom", "amount": "1"})

        assert response.status_code == 422
