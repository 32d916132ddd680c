"""Integration tests for wallet transactions"""

from buildtrack.models import AuditLog, WalletTransaction


def pay(client, user, amount, type="site_visit_payment", **extra):
    response = client.post(
        "/v1/wallet-transactions",
        json={"user_id": str(user.id), "type": type, "amount": amount, **extra},
    )
    assert response.status_code == 201
    return response.json()


class TestWalletTransactions:

    def test_payee_is_notified_after_commit(self, client_for, admin_user, site_engineer, connect_user):
        payee = connect_user(site_engineer)
        bystander = connect_user(admin_user)

        txn = pay(client_for(admin_user), site_engineer, 1500, description="Visit fee")

        assert payee.events() == ["payment-notification"]
        assert payee.sent[0]["data"]["id"] == txn["id"]
        assert payee.sent[0]["data"]["amount"] == 1500.0
        assert bystander.sent == []

    def test_unknown_payee_is_not_recorded_or_announced(
        self, client_for, admin_user, db_session, connect_user, site_engineer
    ):
        watcher = connect_user(site_engineer)

        response = client_for(admin_user).post(
            "/v1/wallet-transactions",
            json={"user_id": "00000000-0000-0000-0000-000000000000", "type": "advance", "amount": 10},
        )

        assert response.status_code == 404
        assert db_session.query(WalletTransaction).count() == 0
        assert watcher.sent == []

    def test_amount_must_be_positive(self, client_for, admin_user, site_engineer):
        response = client_for(admin_user).post(
            "/v1/wallet-transactions",
            json={"user_id": str(site_engineer.id), "type": "advance", "amount": 0},
        )
        assert response.status_code == 422

    def test_list_filters(self, client_for, admin_user, site_engineer, architect_user, project):
        api = client_for(admin_user)
        pay(api, site_engineer, 500)
        pay(api, site_engineer, 2500, type="reimbursement", project_id=str(project.id))
        pay(api, architect_user, 90000, type="architect_payment")

        engineer_only = api.get("/v1/wallet-transactions", params={"user_id": str(site_engineer.id)}).json()
        large = api.get("/v1/wallet-transactions", params={"min_amount": 2000}).json()
        window = api.get("/v1/wallet-transactions", params={"min_amount": 1000, "max_amount": 5000}).json()
        by_project = api.get("/v1/wallet-transactions", params={"project_id": str(project.id)}).json()

        assert engineer_only["total_results"] == 2
        assert {t["amount"] for t in large["results"]} == {2500.0, 90000.0}
        assert [t["amount"] for t in window["results"]] == [2500.0]
        assert [t["type"] for t in by_project["results"]] == ["reimbursement"]

    def test_summary(self, client_for, admin_user, site_engineer):
        api = client_for(admin_user)
        pay(api, site_engineer, 500)
        pay(api, site_engineer, 700)
        pay(api, site_engineer, 2000, type="reimbursement")

        summary = api.get(f"/v1/wallet-transactions/users/{site_engineer.id}/summary").json()

        assert summary["total_amount"] == 3200.0
        assert summary["total_transactions"] == 3
        assert summary["currency"] == "INR"
        assert summary["type_breakdown"] == [
            {"type": "reimbursement", "amount": 2000.0, "count": 1},
            {"type": "site_visit_payment", "amount": 1200.0, "count": 2},
        ]
        assert len(summary["recent_transactions"]) == 3

        mine = client_for(site_engineer).get("/v1/wallet-transactions/me/summary").json()
        assert mine["total_amount"] == 3200.0

    def test_empty_summary(self, client_for, customer_user):
        summary = client_for(customer_user).get("/v1/wallet-transactions/me/summary").json()

        assert summary["total_amount"] == 0
        assert summary["total_transactions"] == 0
        assert summary["type_breakdown"] == []

    def test_delete_is_audited(self, client_for, admin_user, site_engineer, db_session):
        api = client_for(admin_user)
        txn = pay(api, site_engineer, 300)

        assert api.delete(f"/v1/wallet-transactions/{txn['id']}").status_code == 204
        assert api.get(f"/v1/wallet-transactions/{txn['id']}").status_code == 404
        actions = [row.action for row in db_session.query(AuditLog).order_by(AuditLog.created_at).all()]
        assert actions == ["WALLET_TRANSACTION_CREATED", "WALLET_TRANSACTION_DELETED"]

    def test_only_admins_record_payments(self, client_for, sales_admin_user, site_engineer):
        response = client_for(sales_admin_user).post(
            "/v1/wallet-transactions",
            json={"user_id": str(site_engineer.id), "type": "advance", "amount": 10},
        )
        assert response.status_code == 403
