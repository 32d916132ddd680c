"""Integration tests for client proposals"""

import pytest


@pytest.fixture
def proposal(client_for, sales_admin_user, project):
    response = client_for(sales_admin_user).post(
        "/v1/client-proposals",
        json={
            "project_id": str(project.id),
            "title": "Design and build",
            "customer_info": {"name": "Asha Rao"},
            "sections": [{"heading": "Scope", "content": "G+1 residence"}],
            "total_amount": 4500000,
        },
    )
    assert response.status_code == 201
    return response.json()


class TestClientProposals:

    def test_created_as_first_draft(self, proposal):
        assert proposal["status"] == "draft"
        assert proposal["version"] == 1
        assert proposal["sections"] == [{"heading": "Scope", "content": "G+1 residence"}]

    def test_status_moves_follow_the_table(self, client_for, sales_admin_user, proposal):
        api = client_for(sales_admin_user)
        path = f"/v1/client-proposals/{proposal['id']}/status"

        assert api.post(path, json={"status": "sent"}).json()["status"] == "sent"
        assert api.post(path, json={"status": "approved"}).json()["status"] == "approved"

        response = api.post(path, json={"status": "draft"})
        assert response.status_code == 409
        assert "approved -> draft" in response.json()["message"]

    def test_unknown_status_is_a_validation_error(self, client_for, sales_admin_user, proposal):
        response = client_for(sales_admin_user).post(
            f"/v1/client-proposals/{proposal['id']}/status", json={"status": "lost"}
        )
        assert response.status_code == 422

    def test_new_version_copies_and_applies_changes(self, client_for, sales_admin_user, proposal):
        api = client_for(sales_admin_user)
        api.post(f"/v1/client-proposals/{proposal['id']}/status", json={"status": "sent"})

        response = api.post(
            f"/v1/client-proposals/{proposal['id']}/versions",
            json={"total_amount": 4200000},
        )

        assert response.status_code == 201
        copy = response.json()
        assert copy["version"] == 2
        assert copy["status"] == "draft"
        assert copy["parent_proposal_id"] == proposal["id"]
        assert copy["total_amount"] == 4200000.0
        assert copy["sections"] == proposal["sections"]

        third = api.post(f"/v1/client-proposals/{proposal['id']}/versions", json={}).json()
        assert third["version"] == 3

    def test_only_creator_or_admin_may_modify(
        self, client_for, make_user, admin_user, proposal
    ):
        other = client_for(make_user("sales-admin"))

        assert other.patch(f"/v1/client-proposals/{proposal['id']}", json={"title": "x"}).status_code == 403
        assert other.delete(f"/v1/client-proposals/{proposal['id']}").status_code == 403
        assert client_for(admin_user).delete(f"/v1/client-proposals/{proposal['id']}").status_code == 204

    def test_list_filters_by_status(self, client_for, sales_admin_user, proposal, project):
        api = client_for(sales_admin_user)

        drafts = api.get("/v1/client-proposals", params={"status": "draft", "project_id": str(project.id)})
        sent = api.get("/v1/client-proposals", params={"status": "sent"})

        assert drafts.json()["total_results"] == 1
        assert sent.json()["total_results"] == 0

    def test_architect_has_no_access(self, client_for, architect_user):
        assert client_for(architect_user).get("/v1/client-proposals").status_code == 403

    def test_approved_proposal_cannot_be_deleted_or_edited(
        self, client_for, sales_admin_user, admin_user, proposal
    ):
        api = client_for(sales_admin_user)
        path = f"/v1/client-proposals/{proposal['id']}"
        api.post(f"{path}/status", json={"status": "sent"})
        api.post(f"{path}/status", json={"status": "approved"})

        assert client_for(admin_user).delete(path).status_code == 409
        edit = api.patch(path, json={"total_amount": 1})
        assert edit.status_code == 409
        assert edit.json()["error"] == "InvalidTransitionError"

        kept = api.get(path).json()
        assert kept["status"] == "approved"
        assert kept["total_amount"] == 4500000.0

    def test_sent_proposal_is_revised_through_a_new_version(
        self, client_for, sales_admin_user, proposal
    ):
        api = client_for(sales_admin_user)
        path = f"/v1/client-proposals/{proposal['id']}"
        api.post(f"{path}/status", json={"status": "sent"})

        assert api.patch(path, json={"title": "Revised"}).status_code == 409
        revised = api.post(f"{path}/versions", json={"title": "Revised"}).json()
        assert api.patch(f"/v1/client-proposals/{revised['id']}", json={"total_amount": 10}).status_code == 200
