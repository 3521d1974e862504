from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable

import altair as alt
import pandas as pd

from diversion_core.metrics_summary import ChartPoint

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def recovery_bar_chart(points: Iterable[ChartPoint], title: str) -> alt.Chart:
    df = pd.DataFrame([asdict(p) for p in points], columns=["name", "recovery", "count"])
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("recovery:Q", title="Potential Recovery", axis=alt.Axis(format=",.0f")),
            y=alt.Y("name:N", title=title, sort="-x"),
            tooltip=[
                alt.Tooltip("name:N", title=title),
                alt.Tooltip("recovery:Q", format=",.0f"),
                alt.Tooltip("count:Q", title="Diversions"),
            ],
        )
        .properties(height=max(120, 28 * len(df)))
    )


def dashboard_charts(branch_chart: Iterable[ChartPoint], consignee_chart: Iterable[ChartPoint]) -> Dict[str, Any]:
    return {
        "branch_recovery": to_vega_spec(recovery_bar_chart(branch_chart, "Branch")),
        "consignee_recovery": to_vega_spec(recovery_bar_chart(consignee_chart, "Consignee")),
    }
