"""Tests for certificate submission, listing and the staff review queue."""
from datetime import date, timedelta
from pathlib import Path
from uuid import uuid4

from app.core.config import settings
from app.db.schema import CertificateStatus, UserRole, utc_now

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
URL = "/api/v1/certificates/"


def submit(client, headers, files=None, **form):
    form.setdefault("start_date", date.today().isoformat())
    return client.post(URL, data=form, files=files, headers=headers)


class TestSubmit:
    def test_with_days_off_and_image(self, client, student, auth_headers):
        start = date.today() - timedelta(days=2)
        resp = submit(client, auth_headers(student),
                      files={"image": ("atestado.png", PNG, "image/png")},
                      start_date=start.isoformat(), days_off="3",
                      reason="<b>Gripe</b> forte")
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["owner_id"] == str(student.id)
        assert body["end_date"] == (start + timedelta(days=2)).isoformat()
        assert body["days_off"] == 3
        assert body["reason"] == "Gripe forte"
        assert f"/static/certificates/{student.id}/" in body["image_url"]

        stored = Path(settings.static_dir) / "certificates" / str(student.id)
        assert any(p.suffix == ".png" for p in stored.iterdir())

    def test_with_end_date(self, client, student, auth_headers):
        start = date.today()
        resp = submit(client, auth_headers(student), start_date=start.isoformat(),
                      end_date=(start + timedelta(days=4)).isoformat())
        assert resp.status_code == 201
        assert resp.json()["days_off"] == 5
        assert resp.json()["image_url"] == ""

    def test_requires_days_or_end_date(self, client, student, auth_headers):
        resp = submit(client, auth_headers(student))
        assert resp.status_code == 400

    def test_end_before_start(self, client, student, auth_headers):
        start = date.today()
        resp = submit(client, auth_headers(student), start_date=start.isoformat(),
                      end_date=(start - timedelta(days=1)).isoformat())
        assert resp.status_code == 400

    def test_submitted_too_late(self, client, student, auth_headers):
        start = date.today() - timedelta(days=settings.submission_grace_days + 1)
        resp = submit(client, auth_headers(student), start_date=start.isoformat(), days_off="1")
        assert resp.status_code == 400
        assert "days after its start date" in resp.json()["detail"]

    def test_last_day_of_grace_period(self, client, student, auth_headers):
        start = date.today() - timedelta(days=settings.submission_grace_days)
        resp = submit(client, auth_headers(student), start_date=start.isoformat(), days_off="1")
        assert resp.status_code == 201

    def test_too_many_days(self, client, student, auth_headers):
        resp = submit(client, auth_headers(student),
                      days_off=str(settings.max_leave_days + 1))
        assert resp.status_code == 400

    def test_huge_days_off_is_refused(self, client, student, auth_headers):
        resp = submit(client, auth_headers(student), days_off="4000000")
        assert resp.status_code == 400
        assert "cannot exceed" in resp.json()["detail"]

    def test_reason_too_long(self, client, student, auth_headers):
        resp = submit(client, auth_headers(student), days_off="1", reason="x" * 2001)
        assert resp.status_code == 422

    def test_days_off_and_end_date_must_agree(self, client, student, auth_headers):
        start = date.today()
        resp = submit(client, auth_headers(student), start_date=start.isoformat(),
                      days_off="2", end_date=(start + timedelta(days=5)).isoformat())
        assert resp.status_code == 400
        assert "does not match" in resp.json()["detail"]

    def test_days_off_and_matching_end_date(self, client, student, auth_headers):
        start = date.today()
        resp = submit(client, auth_headers(student), start_date=start.isoformat(),
                      days_off="3", end_date=(start + timedelta(days=2)).isoformat())
        assert resp.status_code == 201
        assert resp.json()["days_off"] == 3

    def test_rejects_non_image(self, client, student, auth_headers):
        resp = submit(client, auth_headers(student), days_off="1",
                      files={"image": ("atestado.pdf", b"%PDF-1.7", "application/pdf")})
        assert resp.status_code == 400

    def test_rejects_oversized_image(self, client, student, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_size_bytes", 16)
        resp = submit(client, auth_headers(student), days_off="1",
                      files={"image": ("atestado.png", PNG, "image/png")})
        assert resp.status_code == 413

    def test_staff_cannot_submit(self, client, secretary, auth_headers):
        resp = submit(client, auth_headers(secretary), days_off="1")
        assert resp.status_code == 403


class TestList:
    def test_student_sees_only_own(self, client, make_user, make_certificate, auth_headers):
        alice = make_user(UserRole.STUDENT)
        bob = make_user(UserRole.STUDENT)
        make_certificate(alice)
        make_certificate(alice)
        make_certificate(bob)

        resp = client.get(URL, headers=auth_headers(alice))
        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"]["total"] == 2
        assert {c["owner_id"] for c in body["data"]} == {str(alice.id)}

    def test_student_cannot_list_others(self, client, make_user, auth_headers):
        alice = make_user(UserRole.STUDENT)
        bob = make_user(UserRole.STUDENT)
        resp = client.get(URL, params={"owner_id": str(bob.id)}, headers=auth_headers(alice))
        assert resp.status_code == 403

    def test_staff_filters(self, client, student, make_user, pedagogue, make_certificate,
                           auth_headers):
        other = make_user(UserRole.STUDENT)
        make_certificate(student)
        make_certificate(student, status=CertificateStatus.REJECTED,
                         rejected_by=pedagogue.id, rejection_reason="x")
        make_certificate(other)

        resp = client.get(URL, headers=auth_headers(pedagogue))
        assert resp.json()["pagination"]["total"] == 3

        resp = client.get(URL, params={"owner_id": str(student.id), "status": "pending"},
                          headers=auth_headers(pedagogue))
        assert resp.json()["pagination"]["total"] == 1

    def test_pagination(self, client, student, make_certificate, auth_headers):
        for _ in range(5):
            make_certificate(student)

        resp = client.get(URL, params={"page": 2, "limit": 2}, headers=auth_headers(student))
        pagination = resp.json()["pagination"]
        assert len(resp.json()["data"]) == 2
        assert pagination == {
            "page": 2, "limit": 2, "total": 5, "total_pages": 3,
            "has_next_page": True, "has_previous_page": True,
        }

    def test_invalid_pagination(self, client, student, auth_headers):
        resp = client.get(URL, params={"limit": 101}, headers=auth_headers(student))
        assert resp.status_code == 400

    def test_status_is_derived_from_slots(self, client, student, pedagogue, make_certificate,
                                          auth_headers):
        # A stale status column must not leak through the API
        make_certificate(student, status=CertificateStatus.APPROVED,
                         pedagogy_approved_by=pedagogue.id,
                         pedagogy_approved_at=utc_now())
        resp = client.get(URL, headers=auth_headers(student))
        assert resp.json()["data"][0]["status"] == "approved_by_pedagogy"


class TestGet:
    def test_owner_can_read(self, client, student, make_certificate, auth_headers):
        cert = make_certificate(student)
        resp = client.get(f"{URL}{cert.id}", headers=auth_headers(student))
        assert resp.status_code == 200
        assert resp.json()["id"] == str(cert.id)

    def test_other_student_gets_404(self, client, student, make_user, make_certificate,
                                    auth_headers):
        cert = make_certificate(student)
        intruder = make_user(UserRole.STUDENT)
        resp = client.get(f"{URL}{cert.id}", headers=auth_headers(intruder))
        assert resp.status_code == 404

    def test_unknown(self, client, admin, auth_headers):
        resp = client.get(f"{URL}{uuid4()}", headers=auth_headers(admin))
        assert resp.status_code == 404


class TestReviewQueue:
    def test_lists_owner_and_approvals(self, client, student, pedagogue, make_certificate,
                                       auth_headers):
        cert = make_certificate(student)
        client.patch(f"/api/v1/admin/certificates/{cert.id}/review",
                     json={"action": "approve_pedagogy"}, headers=auth_headers(pedagogue))

        resp = client.get("/api/v1/admin/certificates/", headers=auth_headers(pedagogue))
        assert resp.status_code == 200
        [item] = resp.json()
        assert item["owner"]["email"] == student.email
        assert item["owner"]["ra"] == student.ra
        assert item["pedagogy_approval"]["approver_id"] == str(pedagogue.id)
        assert item["secretariat_approval"] is None
        assert item["rejection"] is None

    def test_filter_by_status(self, client, student, secretary, make_certificate,
                              auth_headers):
        make_certificate(student)
        resp = client.get("/api/v1/admin/certificates/", params={"status": "approved"},
                          headers=auth_headers(secretary))
        assert resp.json() == []

    def test_students_are_refused(self, client, student, auth_headers):
        resp = client.get("/api/v1/admin/certificates/", headers=auth_headers(student))
        assert resp.status_code == 403
