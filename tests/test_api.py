from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import main
from main import app, build_services, get_services

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


@pytest.fixture
def services(tmp_path, store):
    return build_services(storage_path=str(tmp_path / "admin.json"), http=store)


@pytest.fixture
def api(services):
    app.dependency_overrides[get_services] = lambda: services
    main._rate_counters.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth(api):
    response = api.post("/admin/login", json={"username": "admin", "password": "kulana2025"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_public_pages_render_defaults(api) -> None:
    response = api.get("/api/pages/home")
    assert response.status_code == 200
    assert response.json()["hero"]["title"] == "Trusted Development, Built to Last"
    assert api.get("/api/pages/team").json()["members"] == []


def test_disabled_page_redirects_to_404(api, store) -> None:
    store.documents["page_settings"] = {"faq": False}
    response = api.get("/api/pages/faq", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/404"
    assert api.get("/api/pages/faq").status_code == 404
    names = [item["name"] for item in api.get("/api/navbar").json()]
    assert "FAQ" not in names


def test_project_detail(api, store) -> None:
    store.documents["projects"] = {"projects": [{"id": 2, "name": "Tower"}]}
    assert api.get("/api/pages/projects/2").json()["name"] == "Tower"
    assert api.get("/api/pages/projects/9").status_code == 404


def test_bad_login(api) -> None:
    response = api.post("/admin/login", json={"username": "admin", "password": "nope"})
    assert response.status_code == 401


def test_admin_routes_need_token(api) -> None:
    response = api.get("/admin/editors/home")
    assert response.status_code == 401
    assert response.json()["login_url"] == "/admin/login"


def test_expired_store_session_invalidates_console_token(api, auth, store, services) -> None:
    api.patch("/admin/editors/home/sections", json={"path": "hero", "changes": {"title": "X"}}, headers=auth)
    store.tokens.clear()
    response = api.post("/admin/editors/home/save", headers=auth)
    assert response.status_code == 401
    assert not services.session.is_authenticated
    assert api.get("/admin/me", headers=auth).status_code == 401


def test_edit_and_save_section(api, auth, store) -> None:
    response = api.post("/admin/editors/home/toggle", json={"path": "introduction"}, headers=auth)
    assert response.json()["draft"]["introduction"]["enabled"] is False
    assert "home" not in store.documents

    response = api.post("/admin/editors/home/save", headers=auth)
    assert response.status_code == 200
    assert response.json()["notifications"][-1]["kind"] == "success"
    assert store.documents["home"]["introduction"]["enabled"] is False
    assert api.get("/api/pages/home").json()["introduction"] is None


def test_invalid_section_value(api, auth) -> None:
    response = api.patch(
        "/admin/editors/home/sections",
        json={"path": "sections.culture", "changes": {"imagePosition": "top"}},
        headers=auth,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid value"
    assert len(response.json()["fields"]) == 1


def test_team_member_lifecycle(api, auth, store) -> None:
    member = api.post("/admin/editors/team/items", headers=auth).json()["entityDraft"]
    api.patch(
        "/admin/editors/team/items/draft",
        json={"name": "A", "title": "CEO", "bio": "x"},
        headers=auth,
    )
    response = api.post("/admin/editors/team/items/draft/save", headers=auth)
    assert response.status_code == 400
    assert response.json()["fields"] == ["image"]
    assert store.writes() == 0

    response = api.post(
        "/admin/editors/team/items/draft/image",
        files={"image": ("a.png", PNG, "image/png")},
        headers=auth,
    )
    assert response.json()["entityDraft"]["image"] == "https://cdn.test/uploads/1.png"
    response = api.post("/admin/editors/team/items/draft/save", headers=auth)
    assert response.json()["isNew"] is False
    assert store.documents["team"]["members"][0]["id"] == member["id"]

    response = api.delete(f"/admin/editors/team/items/{member['id']}", headers=auth)
    assert response.status_code == 409
    response = api.delete(f"/admin/editors/team/items/{member['id']}?confirm=true", headers=auth)
    assert response.status_code == 200
    assert store.documents["team"]["members"] == []


def test_failed_upload_resets_field(api, auth, store) -> None:
    store.upload_status = 500
    response = api.post(
        "/admin/editors/footer/images",
        data={"path": "sections.companyInfo", "field": "logoUrl"},
        files={"image": ("logo.png", PNG, "image/png")},
        headers=auth,
    )
    assert response.status_code == 502
    draft = api.get("/admin/editors/footer", headers=auth).json()["draft"]
    assert draft["sections"]["companyInfo"]["logoUrl"] == ""


def test_sections_only_editor_has_no_items(api, auth) -> None:
    assert api.post("/admin/editors/home/items", headers=auth).status_code == 404


def test_store_outage_is_retryable(api, auth, store) -> None:
    store.fail("get-config.php", 500)
    response = api.get("/admin/dashboard", headers=auth)
    assert response.status_code == 502
    assert response.json()["retry"] is True


def test_dashboard_counts(api, auth, store) -> None:
    store.documents["projects"] = {"projects": [{"id": 1}, {"id": 2}]}
    body = api.get("/admin/dashboard", headers=auth).json()
    assert body["stats"] == {"projects": 2, "teamMembers": 0, "faqs": 0}
    assert body["configured"] == ["projects"]


def test_preferences(api, auth) -> None:
    assert api.get("/admin/preferences", headers=auth).json() == {"language": "vi", "theme": "light"}
    response = api.put("/admin/preferences", json={"theme": "dark"}, headers=auth)
    assert response.json()["theme"] == "dark"
    assert api.put("/admin/preferences", json={"language": "fr"}, headers=auth).status_code == 422


def test_logout(api, auth, services) -> None:
    assert api.post("/admin/logout", headers=auth).status_code == 200
    assert services.session.token is None
    assert api.get("/admin/me", headers=auth).status_code == 401


def test_update_content_section_route(api, auth) -> None:
    response = api.patch(
        "/admin/editors/home/sections/how-we-build",
        json={"imagePosition": "left"},
        headers=auth,
    )
    assert response.status_code == 200
    sections = {s["id"]: s for s in response.json()["draft"]["sections"]}
    assert sections["how-we-build"]["imagePosition"] == "left"
    missing = api.patch("/admin/editors/home/sections/nope", json={"title": "x"}, headers=auth)
    assert missing.status_code == 404


def test_rate_counters_drop_past_windows(api) -> None:
    main._rate_counters[("10.0.0.1", 0)] = 3
    api.post("/admin/login", json={"username": "admin", "password": "kulana2025"})
    assert ("10.0.0.1", 0) not in main._rate_counters
    assert len(main._rate_counters) == 1
