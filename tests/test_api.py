"""HTTP-level tests for dashboards, charts, templates, data and preview endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from database import JsonFileStore
from main import app


def make_dashboard(client, **fields):
    response = client.post("/api/dashboards", json={"name": "Sales", **fields})
    assert response.status_code == 201
    return response.json()


def add_chart(client, dashboard_id, **fields):
    body = {
        "dashboardId": dashboard_id,
        "type": "bar",
        "title": "Orders",
        "dataEndpoint": "/api/data/orders_over_time",
        **fields,
    }
    return client.post("/api/charts", json=body)


def test_root_and_store_status(client) -> None:
    assert client.get("/").status_code == 200
    status = client.get("/test").json()
    assert status["details"]["backend"] == "json"
    assert status["store"].endswith("Available")


def test_dashboard_crud(client) -> None:
    dashboard = make_dashboard(client, description="Quarterly")
    assert dashboard["columns"] == 12
    assert dashboard["templateId"] is None

    assert [d["id"] for d in client.get("/api/dashboards").json()] == [dashboard["id"]]

    updated = client.put(f"/api/dashboards/{dashboard['id']}", json={"name": "Revenue"}).json()
    assert updated["name"] == "Revenue"
    assert updated["description"] == "Quarterly"

    fetched = client.get(f"/api/dashboards/{dashboard['id']}").json()
    assert fetched["name"] == "Revenue"
    assert fetched["charts"] == []


def test_unknown_dashboard_returns_404(client) -> None:
    assert client.get("/api/dashboards/missing").status_code == 404
    assert client.put("/api/dashboards/missing", json={"name": "x"}).status_code == 404
    assert client.delete("/api/dashboards/missing").status_code == 404


def test_dashboard_requires_name(client) -> None:
    assert client.post("/api/dashboards", json={"name": ""}).status_code == 422


def test_unknown_template_is_rejected(client) -> None:
    response = client.post("/api/dashboards", json={"name": "x", "templateId": "nope"})
    assert response.status_code == 400


def test_chart_round_trip(client) -> None:
    dashboard = make_dashboard(client)
    submitted = {
        "type": "line",
        "title": "User Growth",
        "dataEndpoint": "/api/data/user_growth_by_month",
        "color": "#34d399",
    }
    created = add_chart(client, dashboard["id"], **submitted)
    assert created.status_code == 201
    chart = created.json()

    fetched = client.get(f"/api/charts/{chart['id']}").json()
    for key in ("x", "y", "w", "h", "type", "title", "dataEndpoint", "color"):
        assert fetched[key] == chart[key]
    for key, value in submitted.items():
        assert fetched[key] == value
    assert fetched["dashboardId"] == dashboard["id"]


def test_new_charts_fill_the_grid_row_major(client) -> None:
    dashboard = make_dashboard(client)
    positions = [
        (c["x"], c["y"], c["w"], c["h"])
        for c in (add_chart(client, dashboard["id"]).json() for _ in range(4))
    ]
    assert positions == [(0, 0, 4, 4), (4, 0, 4, 4), (8, 0, 4, 4), (0, 4, 4, 4)]


def test_full_row_is_skipped(client) -> None:
    dashboard = make_dashboard(client, columns=4)
    add_chart(client, dashboard["id"], w=4, h=1)
    chart = add_chart(client, dashboard["id"], w=1, h=1).json()
    assert (chart["x"], chart["y"], chart["w"], chart["h"]) == (0, 1, 1, 1)


def test_template_dashboard_uses_slots(client) -> None:
    dashboard = make_dashboard(client, templateId="two-column")
    first = add_chart(client, dashboard["id"]).json()
    second = add_chart(client, dashboard["id"]).json()
    assert (first["x"], first["y"], first["w"], first["h"]) == (0, 0, 6, 4)
    assert (second["x"], second["y"], second["w"], second["h"]) == (6, 0, 6, 4)


def test_explicit_position_is_kept(client) -> None:
    dashboard = make_dashboard(client)
    chart = add_chart(client, dashboard["id"], x=6, y=2, w=6, h=3).json()
    assert (chart["x"], chart["y"], chart["w"], chart["h"]) == (6, 2, 6, 3)


@pytest.mark.parametrize("fields", [{"x": 10, "y": 0, "w": 4}, {"w": 13}])
def test_chart_outside_grid_is_rejected(client, fields) -> None:
    dashboard = make_dashboard(client)
    assert add_chart(client, dashboard["id"], **fields).status_code == 400


def test_chart_needs_existing_dashboard(client) -> None:
    assert add_chart(client, "missing").status_code == 400


def test_chart_type_must_be_known(client) -> None:
    dashboard = make_dashboard(client)
    assert add_chart(client, dashboard["id"], type="scatter").status_code == 422


def test_chart_update_and_move(client) -> None:
    dashboard = make_dashboard(client)
    chart = add_chart(client, dashboard["id"]).json()

    moved = client.put(f"/api/charts/{chart['id']}", json={"x": 8, "y": 5, "title": "Moved"}).json()
    assert (moved["x"], moved["y"], moved["title"]) == (8, 5, "Moved")
    assert moved["type"] == "bar"

    too_far = client.put(f"/api/charts/{chart['id']}", json={"x": 9})
    assert too_far.status_code == 400
    assert client.put("/api/charts/missing", json={"title": "x"}).status_code == 404


def test_list_charts_by_dashboard(client) -> None:
    first = make_dashboard(client)
    second = make_dashboard(client, name="Ops")
    add_chart(client, first["id"])
    add_chart(client, second["id"])

    assert len(client.get("/api/charts").json()) == 2
    listed = client.get("/api/charts", params={"dashboardId": first["id"]}).json()
    assert [c["dashboardId"] for c in listed] == [first["id"]]


def test_delete_chart(client) -> None:
    dashboard = make_dashboard(client)
    chart = add_chart(client, dashboard["id"]).json()
    assert client.delete(f"/api/charts/{chart['id']}").json() == {"success": True}
    assert client.get(f"/api/charts/{chart['id']}").status_code == 404
    assert client.delete(f"/api/charts/{chart['id']}").status_code == 404


def test_delete_dashboard_cascades_to_charts(client) -> None:
    dashboard = make_dashboard(client)
    other = make_dashboard(client, name="Other")
    add_chart(client, dashboard["id"])
    add_chart(client, dashboard["id"])
    kept = add_chart(client, other["id"]).json()

    response = client.delete(f"/api/dashboards/{dashboard['id']}").json()
    assert response == {"success": True, "deletedCharts": 2}
    assert [c["id"] for c in client.get("/api/charts").json()] == [kept["id"]]


def test_layout_update(client) -> None:
    dashboard = make_dashboard(client)
    a = add_chart(client, dashboard["id"]).json()
    b = add_chart(client, dashboard["id"]).json()

    body = {"items": [
        {"id": a["id"], "x": 4, "y": 0, "w": 4, "h": 4},
        {"id": b["id"], "x": 0, "y": 0, "w": 4, "h": 2},
    ]}
    response = client.put(f"/api/dashboards/{dashboard['id']}/layout", json=body)
    assert response.status_code == 200
    charts = {c["id"]: c for c in response.json()["charts"]}
    assert charts[a["id"]]["x"] == 4
    assert charts[b["id"]]["h"] == 2


def test_layout_update_is_validated_before_writing(client) -> None:
    dashboard = make_dashboard(client)
    other = make_dashboard(client, name="Other")
    a = add_chart(client, dashboard["id"]).json()
    foreign = add_chart(client, other["id"]).json()

    out_of_bounds = {"items": [
        {"id": a["id"], "x": 2, "y": 0, "w": 4, "h": 4},
        {"id": a["id"], "x": 10, "y": 0, "w": 4, "h": 4},
    ]}
    assert client.put(f"/api/dashboards/{dashboard['id']}/layout", json=out_of_bounds).status_code == 400
    assert client.get(f"/api/charts/{a['id']}").json()["x"] == 0

    not_owned = {"items": [{"id": foreign["id"], "x": 0, "y": 0, "w": 1, "h": 1}]}
    assert client.put(f"/api/dashboards/{dashboard['id']}/layout", json=not_owned).status_code == 400


def test_templates(client) -> None:
    templates = client.get("/api/templates").json()
    assert [t["id"] for t in templates] == [
        "single-column", "two-column", "three-column", "hero-layout", "grid-layout",
    ]
    assert client.get("/api/templates/grid-layout").json()["columns"] == 12
    assert client.get("/api/templates/nope").status_code == 404


def test_data_endpoints(client) -> None:
    endpoints = client.get("/api/data").json()
    assert {"value": "/api/data/total_revenue", "label": "Total Revenue"} in endpoints
    for endpoint in endpoints:
        assert client.get(endpoint["value"]).status_code == 200
    assert client.get("/api/data/total_revenue").json()["value"] == 125000
    assert client.get("/api/data/missing").status_code == 404


def test_chart_types(client) -> None:
    assert client.get("/api/chart-types").json() == [
        "number", "bar", "line", "pie", "doughnut", "radar", "polarArea", "area",
    ]


def test_preview_classifies_builtin_data(client) -> None:
    scalar = client.get("/api/preview", params={"endpoint": "/api/data/total_revenue"}).json()
    assert scalar["available"] is True
    assert scalar["allowedTypes"] == ["number"]
    assert scalar["defaultType"] == "number"

    series = client.get("/api/preview", params={"endpoint": "/api/data/signups_by_region"}).json()
    assert series["defaultType"] == "bar"
    assert "number" not in series["allowedTypes"]


def test_preview_of_missing_endpoint_is_unavailable(client) -> None:
    response = client.get("/api/preview", params={"endpoint": "/api/data/missing"})
    assert response.status_code == 200
    assert response.json()["available"] is False
    assert response.json()["defaultType"] is None


def test_legacy_records_are_read_with_defaults(db_path) -> None:
    """Records written before layout fields existed read back at the origin."""

    legacy = {
        "dashboards": [{"id": "d1", "name": "Old", "chartIds": ["c1"]}],
        "charts": [{
            "id": "c1", "dashboardId": "d1", "type": "number",
            "title": "Revenue", "dataEndpoint": "/api/data/total_revenue",
        }],
    }
    with open(db_path, "w", encoding="utf-8") as f:
        json.dump(legacy, f)

    app.state.store = JsonFileStore(db_path)
    try:
        with TestClient(app) as client:
            dashboard = client.get("/api/dashboards/d1").json()
            # a new chart goes next to the legacy one
            added = add_chart(client, "d1").json()
    finally:
        del app.state.store

    assert "chartIds" not in dashboard
    assert dashboard["columns"] == 12
    chart = dashboard["charts"][0]
    assert (chart["x"], chart["y"], chart["w"], chart["h"]) == (0, 0, 4, 4)
    assert chart["color"] == "#60a5fa"
    assert (added["x"], added["y"]) == (4, 0)


def test_null_dashboard_name_is_rejected_without_writing(client) -> None:
    dashboard = make_dashboard(client)
    response = client.put(f"/api/dashboards/{dashboard['id']}", json={"name": None})
    assert response.status_code == 422

    listed = client.get("/api/dashboards")
    assert listed.status_code == 200
    assert [d["name"] for d in listed.json()] == ["Sales"]
    assert add_chart(client, dashboard["id"]).status_code == 201


def test_null_description_clears_it(client) -> None:
    dashboard = make_dashboard(client, description="Quarterly")
    updated = client.put(f"/api/dashboards/{dashboard['id']}", json={"description": None}).json()
    assert updated["name"] == "Sales"
    assert updated["description"] is None


@pytest.mark.parametrize("fields", [{"x": 3}, {"y": 2}])
def test_partial_position_is_rejected(client, fields) -> None:
    dashboard = make_dashboard(client)
    assert add_chart(client, dashboard["id"], **fields).status_code == 400
    assert client.get("/api/charts").json() == []


def test_explicit_position_on_narrow_grid_fits_default_width(client) -> None:
    dashboard = make_dashboard(client, columns=2)
    response = add_chart(client, dashboard["id"], x=0, y=1)
    assert response.status_code == 201
    assert (response.json()["w"], response.json()["x"]) == (2, 0)


def test_empty_dashboard_filter_matches_nothing(client) -> None:
    dashboard = make_dashboard(client)
    add_chart(client, dashboard["id"])
    assert client.get("/api/charts", params={"dashboardId": ""}).json() == []
