import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional, Dict, Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from classifier import ChartType
from database import NotFoundError, Store, open_store
from layout import DEFAULT_HEIGHT, DEFAULT_WIDTH, LAYOUT_TEMPLATES, Placement, get_template, place_widget
from preview import fetch_preview
from sample_data import catalog, get_dataset
from schemas import (
    DEFAULT_COLOR,
    Chart,
    CreateChart,
    CreateDashboard,
    Dashboard,
    UpdateChart,
    UpdateDashboard,
    UpdateLayout,
    read_record,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # a store set on app.state before startup is used as-is, otherwise the environment picks one
    store = getattr(app.state, "store", None)
    app.state.store = store.open() if store is not None else open_store()
    try:
        yield
    finally:
        app.state.store.close()
        logger.info("Store closed")


app = FastAPI(title="Dashboard Builder API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store(request: Request) -> Store:
    return request.app.state.store


# ---------- Helpers ----------

def _dashboard_or_404(store: Store, dashboard_id: str) -> Dict[str, Any]:
    try:
        return read_record(Dashboard, store.get_dashboard(dashboard_id))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Dashboard not found")


def _chart_or_404(store: Store, chart_id: str) -> Dict[str, Any]:
    try:
        return read_record(Chart, store.get_chart(chart_id))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Chart not found")


def _charts(store: Store, dashboard_id: Optional[str] = None) -> List[Dict[str, Any]]:
    return [read_record(Chart, d) for d in store.list_charts(dashboard_id)]


def _check_bounds(rect: Placement, columns: int):
    if rect.x + rect.w > columns:
        raise HTTPException(
            status_code=400,
            detail=f"Chart at x={rect.x} with width {rect.w} exceeds the {columns}-column grid",
        )


@app.get("/")
def read_root():
    return {"message": "Dashboard Builder Backend Running"}


@app.get("/test")
def test_store(store: Store = Depends(get_store)):
    response = {"backend": "✅ Running", "store": "❌ Not Available", "details": {}}
    try:
        response["details"] = store.status()
        response["store"] = "✅ Available"
    except Exception as e:
        response["store"] = f"❌ Error: {str(e)[:50]}"
    return response


# ---------- Dashboard Endpoints ----------
@app.get("/api/dashboards")
def list_dashboards(store: Store = Depends(get_store)):
    return [read_record(Dashboard, d) for d in store.list_dashboards()]


@app.post("/api/dashboards", status_code=201)
def create_dashboard(payload: CreateDashboard, store: Store = Depends(get_store)):
    template = None
    if payload.templateId:
        template = get_template(payload.templateId)
        if template is None:
            raise HTTPException(status_code=400, detail="Unknown layout template")
    columns = payload.columns or (template["columns"] if template else int(os.getenv("GRID_COLUMNS", "12")))
    doc = Dashboard(
        name=payload.name,
        description=payload.description,
        columns=columns,
        templateId=payload.templateId,
    ).model_dump()
    return read_record(Dashboard, store.create_dashboard(doc))


@app.get("/api/dashboards/{dashboard_id}")
def get_dashboard(dashboard_id: str, store: Store = Depends(get_store)):
    dashboard = _dashboard_or_404(store, dashboard_id)
    return {**dashboard, "charts": _charts(store, dashboard_id)}


@app.put("/api/dashboards/{dashboard_id}")
def update_dashboard(dashboard_id: str, payload: UpdateDashboard, store: Store = Depends(get_store)):
    try:
        doc = store.update_dashboard(dashboard_id, payload.model_dump(exclude_unset=True))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Dashboard not found")
    return read_record(Dashboard, doc)


@app.delete("/api/dashboards/{dashboard_id}")
def delete_dashboard(dashboard_id: str, store: Store = Depends(get_store)):
    try:
        removed = store.delete_dashboard(dashboard_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Dashboard not found")
    return {"success": True, "deletedCharts": removed}


@app.put("/api/dashboards/{dashboard_id}/layout")
def update_layout(dashboard_id: str, payload: UpdateLayout, store: Store = Depends(get_store)):
    dashboard = _dashboard_or_404(store, dashboard_id)
    owned = {c["id"] for c in _charts(store, dashboard_id)}
    for item in payload.items:
        if item.id not in owned:
            raise HTTPException(status_code=400, detail=f"Chart {item.id} is not on this dashboard")
        _check_bounds(Placement(item.x, item.y, item.w, item.h), dashboard["columns"])
    for item in payload.items:
        store.update_chart(item.id, item.model_dump(exclude={"id"}))
    return {**dashboard, "charts": _charts(store, dashboard_id)}


# ---------- Chart Endpoints ----------
@app.get("/api/charts")
def list_charts(dashboardId: Optional[str] = None, store: Store = Depends(get_store)):
    return _charts(store, dashboardId)


@app.post("/api/charts", status_code=201)
def create_chart(payload: CreateChart, store: Store = Depends(get_store)):
    # validate dashboard exists
    try:
        dashboard = read_record(Dashboard, store.get_dashboard(payload.dashboardId))
    except NotFoundError:
        raise HTTPException(status_code=400, detail="Related dashboard not found")
    columns = dashboard["columns"]
    if payload.w is not None and payload.w > columns:
        raise HTTPException(status_code=400, detail=f"Width exceeds the {columns}-column grid")

    if (payload.x is None) != (payload.y is None):
        raise HTTPException(status_code=400, detail="Give both x and y, or neither")

    existing = _charts(store, payload.dashboardId)
    if payload.x is not None:
        rect = Placement(payload.x, payload.y, payload.w or min(DEFAULT_WIDTH, columns), payload.h or DEFAULT_HEIGHT)
        _check_bounds(rect, columns)
    else:
        rect = place_widget(existing, columns, payload.w, payload.h, get_template(dashboard["templateId"]))

    doc = Chart(
        dashboardId=payload.dashboardId,
        type=payload.type.value,
        title=payload.title,
        dataEndpoint=payload.dataEndpoint,
        color=payload.color or DEFAULT_COLOR,
        **rect.to_dict(),
    ).model_dump()
    return read_record(Chart, store.create_chart(doc))


@app.get("/api/charts/{chart_id}")
def get_chart(chart_id: str, store: Store = Depends(get_store)):
    return _chart_or_404(store, chart_id)


@app.put("/api/charts/{chart_id}")
def update_chart(chart_id: str, payload: UpdateChart, store: Store = Depends(get_store)):
    chart = _chart_or_404(store, chart_id)
    patch = payload.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    merged = {**chart, **patch}
    if any(k in patch for k in ("x", "y", "w", "h")):
        dashboard = _dashboard_or_404(store, chart["dashboardId"])
        _check_bounds(Placement(merged["x"], merged["y"], merged["w"], merged["h"]), dashboard["columns"])
    return read_record(Chart, store.update_chart(chart_id, patch))


@app.delete("/api/charts/{chart_id}")
def delete_chart(chart_id: str, store: Store = Depends(get_store)):
    try:
        store.delete_chart(chart_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Chart not found")
    return {"success": True}


# ---------- Layout Templates ----------
@app.get("/api/templates")
def list_templates():
    return LAYOUT_TEMPLATES


@app.get("/api/templates/{template_id}")
def read_template(template_id: str):
    template = get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


# ---------- Data Endpoints ----------
@app.get("/api/data")
def list_data_endpoints():
    return catalog()


@app.get("/api/data/{name}")
def read_data(name: str):
    data = get_dataset(name)
    if data is None:
        raise HTTPException(status_code=404, detail="Data endpoint not found")
    return data


@app.get("/api/chart-types")
def list_chart_types():
    return [t.value for t in ChartType]


# ---------- Preview Endpoint ----------
@app.get("/api/preview")
async def preview(endpoint: str):
    return (await fetch_preview(endpoint)).to_dict()


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
