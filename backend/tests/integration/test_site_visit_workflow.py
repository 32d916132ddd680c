"""Integration tests for the site visit workflow.

Tests the complete flow:
- Scheduling (site engineer only)
- Progress saves with staged files and the automatic move to InProgress
- Completion guard
- Admin approval merging the draft into the requirement and outdating siblings
"""

from datetime import datetime, timezone

import pytest

from buildtrack.domain.errors import ForbiddenError
from buildtrack.models import AuditLog, Requirement, SiteVisit
from buildtrack.site_visits import service as site_visit_service


def add_visit(db, requirement, engineer, status, updated_data=None, remarks=None):
    visit = SiteVisit(
        requirement_id=requirement.id,
        project_id=requirement.project_id,
        site_engineer_id=engineer.id,
        visit_date=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        status=status,
        updated_data=updated_data,
        remarks=remarks,
    )
    db.add(visit)
    db.commit()
    db.refresh(visit)
    return visit


class TestApproveSiteVisit:
    """POST /v1/site-visits/{id}/approve"""

    def test_approval_merges_draft_and_outdates_siblings(
        self, client_for, db_session, admin_user, site_engineer, requirement
    ):
        approved = add_visit(db_session, requirement, site_engineer, "Completed", updated_data={"roomCount": 4})
        scheduled = add_visit(db_session, requirement, site_engineer, "Scheduled")
        completed = add_visit(db_session, requirement, site_engineer, "Completed", updated_data={"roomCount": 5})
        cancelled = add_visit(db_session, requirement, site_engineer, "Cancelled")

        response = client_for(admin_user).post(f"/v1/site-visits/{approved.id}/approve")

        assert response.status_code == 200
        assert response.json()["status"] == "Approved"

        db_session.expire_all()
        req = db_session.get(Requirement, requirement.id)
        assert req.scp_data["roomCount"] == 4
        assert req.scp_data["plotArea"] == 1200
        assert db_session.get(SiteVisit, scheduled.id).status == "Outdated"
        assert db_session.get(SiteVisit, completed.id).status == "Outdated"
        assert db_session.get(SiteVisit, cancelled.id).status == "Cancelled"

        visit = db_session.get(SiteVisit, approved.id)
        assert visit.approved_by_id == admin_user.id
        assert visit.approved_at is not None

        merged = db_session.query(AuditLog).filter(AuditLog.action == "SITE_VISIT_MERGED").one()
        assert set(merged.metadata_json["outdated_visits"]) == {str(scheduled.id), str(completed.id)}

    @pytest.mark.parametrize("siblings", [1, 3, 6])
    def test_single_approval_with_k_siblings(
        self, client_for, db_session, admin_user, site_engineer, requirement, siblings
    ):
        statuses = ["Scheduled", "InProgress", "Completed"]
        visits = [
            add_visit(db_session, requirement, site_engineer, statuses[i % 3], remarks="seen")
            for i in range(siblings)
        ]
        target = add_visit(db_session, requirement, site_engineer, "Completed", updated_data={"floors": 2})

        response = client_for(admin_user).post(f"/v1/site-visits/{target.id}/approve")
        assert response.status_code == 200

        db_session.expire_all()
        rows = db_session.query(SiteVisit).filter(SiteVisit.requirement_id == requirement.id).all()
        by_status = {}
        for row in rows:
            by_status.setdefault(row.status, []).append(row.id)
        assert by_status["Approved"] == [target.id]
        assert len(by_status["Outdated"]) == len(visits)
        assert not {"Scheduled", "InProgress", "Completed"} & set(by_status)

    def test_approving_scheduled_visit_is_rejected(
        self, client_for, db_session, admin_user, site_engineer, requirement
    ):
        visit = add_visit(db_session, requirement, site_engineer, "Scheduled")

        response = client_for(admin_user).post(f"/v1/site-visits/{visit.id}/approve")

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidTransitionError"
        db_session.expire_all()
        assert db_session.get(SiteVisit, visit.id).status == "Scheduled"

    def test_sales_admin_cannot_approve(
        self, client_for, db_session, sales_admin_user, site_engineer, requirement
    ):
        visit = add_visit(db_session, requirement, site_engineer, "Completed", remarks="done")

        response = client_for(sales_admin_user).post(f"/v1/site-visits/{visit.id}/approve")

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_role_rule_applies_below_the_api(
        self, coordinator, db_session, site_engineer, requirement
    ):
        visit = add_visit(db_session, requirement, site_engineer, "Completed", remarks="done")

        with pytest.raises(ForbiddenError):
            await site_visit_service.approve_visit(coordinator, visit.id, site_engineer)

        db_session.expire_all()
        assert db_session.get(SiteVisit, visit.id).status == "Completed"

    def test_approval_notifies_engineer(
        self, client_for, db_session, admin_user, site_engineer, requirement, project, connect_user
    ):
        visit = add_visit(db_session, requirement, site_engineer, "Completed", updated_data={"roomCount": 4})
        watcher = connect_user(site_engineer)

        response = client_for(admin_user).post(f"/v1/site-visits/{visit.id}/approve")

        assert response.status_code == 200
        assert watcher.events() == ["site-visit-approved"]
        assert watcher.sent[0]["data"]["site_visit_id"] == str(visit.id)


class TestSiteVisitProgress:
    """Scheduling, progress saves and completion"""

    def test_schedule_requires_site_engineer_assignee(
        self, client_for, admin_user, architect_user, requirement
    ):
        response = client_for(admin_user).post(
            f"/v1/requirements/{requirement.id}/site-visits",
            json={"site_engineer_id": str(architect_user.id), "visit_date": "2024-05-01T10:00:00Z"},
        )

        assert response.status_code == 400

    def test_progress_relocates_files_and_starts_visit(
        self, client_for, db_session, admin_user, site_engineer, lead, requirement,
        put_object, object_keys,
    ):
        scheduled = client_for(admin_user).post(
            f"/v1/requirements/{requirement.id}/site-visits",
            json={"site_engineer_id": str(site_engineer.id), "visit_date": "2024-05-01T10:00:00Z"},
        )
        assert scheduled.status_code == 201
        visit_id = scheduled.json()["id"]

        staged = put_object("uploads/tmp/site-visit/photo-1.JPG")
        engineer = client_for(site_engineer)
        response = engineer.patch(
            f"/v1/site-visits/{visit_id}",
            json={
                "updated_data": {"roomCount": 4},
                "files": [{"key": staged, "file_type": "photo"}],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "InProgress"
        assert body["updated_data"] == {"roomCount": 4}
        new_key = body["files"][0]["key"]
        assert new_key.startswith(f"customer-leads/{lead.id}/{requirement.id}/{visit_id}/")
        assert new_key.endswith(".jpg")
        assert object_keys("customer-leads/") == {new_key}
        assert object_keys("uploads/tmp/") == set()

        second = engineer.patch(f"/v1/site-visits/{visit_id}", json={"updated_data": {"floors": 2}})
        assert second.status_code == 200
        assert second.json()["updated_data"] == {"roomCount": 4, "floors": 2}
        assert second.json()["status"] == "InProgress"

        completed = engineer.post(f"/v1/site-visits/{visit_id}/complete")
        assert completed.status_code == 200
        assert completed.json()["status"] == "Completed"

    def test_missing_staged_file_leaves_visit_scheduled(
        self, client_for, db_session, site_engineer, requirement, object_keys
    ):
        visit = add_visit(db_session, requirement, site_engineer, "Scheduled")

        response = client_for(site_engineer).patch(
            f"/v1/site-visits/{visit.id}",
            json={"files": [{"key": "uploads/tmp/site-visit/missing.jpg"}]},
        )

        assert response.status_code == 502
        db_session.expire_all()
        assert db_session.get(SiteVisit, visit.id).status == "Scheduled"
        assert object_keys("customer-leads/") == set()

    def test_other_engineer_cannot_save_progress(
        self, client_for, db_session, site_engineer, requirement, make_user
    ):
        visit = add_visit(db_session, requirement, site_engineer, "Scheduled")
        other = make_user("site-engineer")

        response = client_for(other).patch(f"/v1/site-visits/{visit.id}", json={"remarks": "x"})

        assert response.status_code == 403
