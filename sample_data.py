"""
Canned data endpoints

Every dataset is served under /api/data/<name>. Payloads come in the two
shapes the classifier recognizes: a scalar ``{value, label}`` or a
categorical ``{labels, values}`` series.
"""

from typing import Any, Dict, List, Optional

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

DATASETS: Dict[str, Dict[str, Any]] = {
    "total_revenue": {"value": 125000, "label": "Total Revenue", "currency": "USD"},
    "orders_over_time": {
        "labels": MONTHS[:6],
        "values": [120, 200, 150, 170, 210, 250],
    },
    "user_growth_by_month": {
        "labels": MONTHS,
        "values": [120, 180, 250, 320, 410, 500, 600, 720, 850, 1000, 1200, 1400],
    },
    "conversion_rate_over_time": {
        "labels": MONTHS,
        "values": [2.1, 2.3, 2.5, 2.7, 2.8, 3.0, 3.2, 3.3, 3.5, 3.7, 3.8, 4.0],
    },
    "page_views_by_category": {
        "labels": ["Home", "Pricing", "Docs", "Blog", "Contact"],
        "values": [3200, 2100, 4100, 1500, 900],
    },
    "signups_by_region": {
        "labels": ["Americas", "EMEA", "APAC"],
        "values": [320, 210, 180],
    },
    "sales_by_category": {
        "labels": ["Electronics", "Clothing", "Books", "Home & Garden", "Sports", "Beauty"],
        "values": [45000, 32000, 18000, 25000, 15000, 22000],
    },
    "customer_satisfaction": {
        "labels": MONTHS,
        "values": [4.2, 4.1, 4.3, 4.5, 4.4, 4.6, 4.7, 4.8, 4.6, 4.9, 4.8, 4.9],
    },
    "headcount_by_department": {
        "labels": [
            "Research & Development",
            "Marketing & Sales",
            "Human Resources",
            "Information Technology",
            "Customer Support",
            "Finance & Accounting",
            "Operations Management",
            "Product Management",
        ],
        "values": [45, 38, 12, 28, 35, 15, 22, 18],
    },
    "platform_scores": {
        "labels": ["Speed", "Reliability", "Usability", "Security", "Scalability", "Cost Efficiency"],
        "values": [85, 92, 78, 95, 88, 82],
    },
    "gdp_by_country": {
        "labels": ["USA", "China", "Japan", "Germany", "India", "UK", "France", "Italy"],
        "values": [21400000, 14300000, 4230000, 4070000, 3380000, 3070000, 2780000, 2010000],
    },
}

DATA_PREFIX = "/api/data/"


def endpoint_for(name: str) -> str:
    return DATA_PREFIX + name


def catalog() -> List[Dict[str, str]]:
    return [
        {"value": endpoint_for(name), "label": name.replace("_", " ").title()}
        for name in DATASETS
    ]


def get_dataset(name: str) -> Optional[Dict[str, Any]]:
    data = DATASETS.get(name)
    # callers may mutate the payload they get back
    return {k: list(v) if isinstance(v, list) else v for k, v in data.items()} if data else None


def resolve_local(endpoint: str) -> Optional[Dict[str, Any]]:
    """Return the payload for a relative /api/data/<name> endpoint, if known."""
    if not endpoint.startswith(DATA_PREFIX):
        return None
    return get_dataset(endpoint[len(DATA_PREFIX):].strip("/"))
