"""Integration tests for user administration endpoints"""

from datetime import datetime, timezone

from buildtrack.models import AuditLog, SiteVisit, User


def add_visit(db, requirement, engineer, status, day):
    visit = SiteVisit(
        requirement_id=requirement.id,
        site_engineer_id=engineer.id,
        visit_date=datetime(2024, 5, day, 10, 0, tzinfo=timezone.utc),
        status=status,
    )
    db.add(visit)
    db.commit()
    return visit


class TestUserListing:

    def test_admin_lists_and_filters_users(self, client_for, admin_user, site_engineer, customer_user):
        api = client_for(admin_user)

        everyone = api.get("/v1/users").json()
        engineers = api.get("/v1/users", params={"role": "site-engineer"}).json()
        by_name = api.get("/v1/users", params={"name": "engin"}).json()

        assert everyone["total_results"] == 3
        assert [u["id"] for u in engineers["results"]] == [str(site_engineer.id)]
        assert by_name["total_results"] == 1

    def test_manage_users_is_admin_only(self, client_for, sales_admin_user, site_engineer):
        api = client_for(sales_admin_user)

        assert api.get("/v1/users").status_code == 403
        assert api.post(f"/v1/users/{site_engineer.id}/deactivate").status_code == 403

    def test_site_engineer_dropdown_lists_active_engineers_by_name(
        self, client_for, sales_admin_user, site_engineer, make_user, admin_user
    ):
        disabled = make_user("site-engineer", name="Zed Engineer")
        another = make_user("site-engineer", name="Anil Engineer")
        client_for(admin_user).post(f"/v1/users/{disabled.id}/deactivate")

        response = client_for(sales_admin_user).get("/v1/users/site-engineers")

        assert response.status_code == 200
        assert [u["id"] for u in response.json()["results"]] == [str(another.id), str(site_engineer.id)]

    def test_my_site_visits(self, client_for, db_session, site_engineer, make_user, requirement):
        add_visit(db_session, requirement, site_engineer, "Scheduled", day=1)
        add_visit(db_session, requirement, site_engineer, "Completed", day=3)
        add_visit(db_session, requirement, make_user("site-engineer"), "Scheduled", day=2)
        api = client_for(site_engineer)

        mine = api.get("/v1/users/me/site-visits").json()
        scheduled = api.get("/v1/users/me/site-visits", params={"status": "Scheduled"}).json()

        assert mine["total_results"] == 2
        assert [v["status"] for v in mine["results"]] == ["Completed", "Scheduled"]
        assert scheduled["total_results"] == 1


class TestUserActivation:

    def test_deactivate_blocks_requests_and_is_audited(
        self, client_for, admin_user, site_engineer, db_session
    ):
        assert client_for(site_engineer).get("/v1/users/me/site-visits").status_code == 200

        response = client_for(admin_user).post(f"/v1/users/{site_engineer.id}/deactivate")

        assert response.status_code == 200
        assert response.json()["status"] == "DISABLED"
        assert client_for(site_engineer).get("/v1/users/me/site-visits").status_code == 403
        audit = db_session.query(AuditLog).filter(AuditLog.action == "USER_DEACTIVATED").one()
        assert audit.entity_id == site_engineer.id
        assert audit.metadata_json == {"from": "ACTIVE", "to": "DISABLED"}

        reactivated = client_for(admin_user).post(f"/v1/users/{site_engineer.id}/activate")
        assert reactivated.json()["status"] == "ACTIVE"
        assert client_for(site_engineer).get("/v1/users/me/site-visits").status_code == 200

    def test_deactivation_closes_live_connections(
        self, client_for, admin_user, customer_user, connect_user, registry
    ):
        connection = connect_user(customer_user)

        client_for(admin_user).post(f"/v1/users/{customer_user.id}/deactivate")

        assert connection.closed
        assert not registry.is_online(customer_user.id)

    def test_repeating_the_current_state_is_not_audited(self, client_for, admin_user, customer_user, db_session):
        response = client_for(admin_user).post(f"/v1/users/{customer_user.id}/activate")

        assert response.status_code == 200
        assert db_session.query(AuditLog).filter(AuditLog.entity_type == "user").count() == 0

    def test_admin_cannot_deactivate_self(self, client_for, admin_user, db_session):
        response = client_for(admin_user).post(f"/v1/users/{admin_user.id}/deactivate")

        assert response.status_code == 400
        db_session.expire_all()
        assert db_session.get(User, admin_user.id).status == "ACTIVE"

    def test_unknown_user_is_not_found(self, client_for, admin_user):
        response = client_for(admin_user).post("/v1/users/00000000-0000-0000-0000-000000000000/activate")
        assert response.status_code == 404
