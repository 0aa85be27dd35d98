"""
Response Formatter
Shapes query results into TEXT, TABLE or CHART payloads for the chat UI
"""
from __future__ import annotations

import json
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from finac.core.formatting import format_currency

from .config import ChatConfig, chat_config
from .types import (
    ChartData,
    ChartSeries,
    ChartType,
    FormattedResponse,
    ResponseType,
    TableData,
)

BAR_X_CANDIDATES = ("date", "name", "category", "type")
PIE_NAME_CANDIDATES = ("name", "category", "type")
PIE_VALUE_CANDIDATES = ("value", "total", "amount")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _to_number(value: Any) -> int | float:
    """Coerce chart values to numbers, falling back to 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else 0
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0
        return number if math.isfinite(number) else 0
    return 0


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str, ensure_ascii=False)


def _as_rows(data: Any) -> List[Dict[str, Any]]:
    """Normalise anything into a list of dict rows."""
    if data is None:
        return []
    items = data if isinstance(data, (list, tuple)) else [data]
    return [item if isinstance(item, dict) else {"value": item} for item in items]


class ResponseFormatter:
    """Builds typed chat responses from executor results"""

    def __init__(self, config: Optional[ChatConfig] = None):
        """
        Initialize response formatter

        Args:
            config: Presentation settings (uses the global chat config if None)
        """
        self.config = config or chat_config

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def format_response(
        self,
        presentation_type: ResponseType | str | None,
        data: Any,
        chart_type: ChartType | str | None = None,
        explanation: Optional[str] = None,
    ) -> FormattedResponse:
        """
        Shape ``data`` into the requested presentation.

        Args:
            presentation_type: TEXT, TABLE or CHART (unknown values mean TEXT)
            data: Scalar, row list or grouped buckets from the executor
            chart_type: Optional chart hint, inferred when absent
            explanation: Natural language text accompanying the result

        Returns:
            FormattedResponse; CHART degrades to TEXT when there is nothing to plot
        """
        response_type = ResponseType.parse(presentation_type)

        if response_type is ResponseType.TABLE:
            return FormattedResponse(
                type=ResponseType.TABLE,
                content=explanation,
                table=self.format_as_table(data),
            )

        if response_type is ResponseType.CHART:
            if not isinstance(data, (list, tuple)) or not data:
                return FormattedResponse(
                    type=ResponseType.TEXT,
                    content=explanation or self.config.no_chart_data_message,
                )
            rows = _as_rows(data)
            chart = self._build_chart(rows, self.infer_chart_type(rows, chart_type, explanation), explanation)
            return FormattedResponse(type=ResponseType.CHART, content=explanation, chart=chart)

        return FormattedResponse(type=ResponseType.TEXT, content=self._text_content(data, explanation))

    def _text_content(self, data: Any, explanation: Optional[str]) -> str:
        # both parts are kept; chat clients read the raw data from the content
        if data is None:
            return explanation or ""
        rendered = _to_json(data)
        return f"{explanation}\n\n{rendered}" if explanation else rendered

    # ------------------------------------------------------------------
    # Chart type inference
    # ------------------------------------------------------------------

    def infer_chart_type(
        self,
        rows: Sequence[Dict[str, Any]],
        chart_type: ChartType | str | None = None,
        explanation: Optional[str] = None,
    ) -> ChartType:
        """Explicit hint, then explanation keywords, then row shape, then the default."""
        hinted = ChartType.parse(chart_type)
        if hinted is not None:
            return hinted
        if self._mentions_proportions(explanation):
            return ChartType.PIE
        if self._looks_categorical(rows):
            return ChartType.PIE
        return ChartType(self.config.chart_default_type)

    def _mentions_proportions(self, explanation: Optional[str]) -> bool:
        if not explanation:
            return False
        text = explanation.lower()
        return any(keyword in text for keyword in self.config.pie_keywords)

    @staticmethod
    def _looks_categorical(rows: Sequence[Dict[str, Any]]) -> bool:
        """Grouped-by-category summaries: a label, no date, and a total."""
        if not rows:
            return False
        return all(
            ("category" in row or "type" in row)
            and "date" not in row
            and ("total" in row or "value" in row)
            for row in rows
        )

    def _build_chart(
        self,
        rows: List[Dict[str, Any]],
        chart_type: ChartType,
        explanation: Optional[str],
    ) -> ChartData:
        keys = list(rows[0].keys())

        if chart_type is ChartType.LINE:
            return self.format_as_line_chart(rows, title=explanation)

        if chart_type in (ChartType.PIE, ChartType.DONUT):
            name_key = next((k for k in keys if k in PIE_NAME_CANDIDATES), "name")
            value_key = next((k for k in keys if k in PIE_VALUE_CANDIDATES), "value")
            return self.format_as_pie_chart(rows, name_key, value_key, chart_type, title=explanation)

        x_key = next((k for k in keys if k in BAR_X_CANDIDATES), "name")
        y_keys = [k for k in keys if k not in BAR_X_CANDIDATES and _is_number(rows[0][k])]
        return self.format_as_bar_chart(rows, x_key, y_keys or ["value"], title=explanation)

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def format_as_table(self, data: Any) -> TableData:
        """Render rows as pre-formatted table cells."""
        rows = _as_rows(data)
        columns: List[str] = []
        for row in rows:
            for key in row:
                if key.startswith("_") or key == "fill" or key in columns:
                    continue
                columns.append(key)

        formatted = [
            {column: self._format_cell(column, row.get(column)) for column in columns}
            for row in rows
        ]
        return TableData(columns=columns, rows=formatted)

    def _format_cell(self, column: str, value: Any) -> Any:
        if value is None:
            return "-"
        if isinstance(value, (date, datetime)):
            return value.strftime(self.config.table_date_format)
        if isinstance(value, dict):
            if value.get("name") is not None:
                return value["name"]
            if value.get("id") is not None:
                return str(value["id"])
            return json.dumps(value, default=str, ensure_ascii=False)
        if _is_number(value) and self._is_currency_column(column):
            return format_currency(value, self.config.currency, self.config.locale)
        if isinstance(value, Decimal):
            return float(value)
        return value

    def _is_currency_column(self, column: str) -> bool:
        name = column.lower()
        return any(marker in name for marker in self.config.currency_column_markers)

    def format_as_line_chart(
        self,
        data: Sequence[Dict[str, Any]],
        x_axis_key: str = "date",
        y_axis_key: str = "total",
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ChartData:
        points = []
        for row in data:
            point = dict(row)
            point[x_axis_key] = next(
                (v for v in (row.get(x_axis_key), row.get("date"), row.get("name")) if v is not None),
                None,
            )
            point[y_axis_key] = _to_number(row.get(y_axis_key))
            points.append(point)

        return ChartData(
            type=ChartType.LINE,
            data=points,
            config={y_axis_key: ChartSeries(label=y_axis_key, color=self.config.line_color)},
            x_axis_key=x_axis_key,
            y_axis_key=y_axis_key,
            title=title,
            description=description,
        )

    def format_as_bar_chart(
        self,
        data: Sequence[Dict[str, Any]],
        x_axis_key: str = "name",
        y_axis_keys: Optional[Sequence[str]] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ChartData:
        y_axis_keys = list(y_axis_keys or ["value"])
        bars = []
        for row in data:
            label = next(
                (
                    v
                    for v in (row.get(x_axis_key), *(row.get(k) for k in ("name", "category", "type")))
                    if v is not None
                ),
                None,
            )
            bar: Dict[str, Any] = {x_axis_key: label}
            for key in y_axis_keys:
                bar[key] = _to_number(row.get(key))
            bars.append(bar)

        palette = self.config.bar_color_palette
        config = {
            key: ChartSeries(label=key, color=palette[idx % len(palette)])
            for idx, key in enumerate(y_axis_keys)
        }
        return ChartData(
            type=ChartType.BAR,
            data=bars,
            config=config,
            x_axis_key=x_axis_key,
            y_axis_key=y_axis_keys[0],
            title=title,
            description=description,
        )

    def format_as_pie_chart(
        self,
        data: Sequence[Dict[str, Any]],
        name_key: str = "name",
        value_key: str = "value",
        chart_type: ChartType | str = ChartType.DONUT,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ChartData:
        palette = self.config.pie_color_palette
        slices = []
        config: Dict[str, ChartSeries] = {}
        for idx, row in enumerate(data):
            name = next(
                (
                    v
                    for v in (row.get(name_key), *(row.get(k) for k in PIE_NAME_CANDIDATES))
                    if v is not None
                ),
                f"Item {idx + 1}",
            )
            fill = row.get("color") or row.get("fill") or palette[idx % len(palette)]
            slices.append({"name": name, "value": _to_number(row.get(value_key)), "fill": fill})
            config[str(name)] = ChartSeries(label=str(name), color=str(fill))

        resolved = ChartType.parse(chart_type)
        return ChartData(
            type=resolved if resolved in (ChartType.PIE, ChartType.DONUT) else ChartType.DONUT,
            data=slices,
            config=config,
            name_key="name",
            data_key="value",
            title=title,
            description=description,
        )

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def generate_summary(self, data: Any, entity: str) -> str:
        """One-line summary of an executor result, e.g. ``Found 3 goals.``"""
        if isinstance(data, (list, tuple)):
            if not data:
                return f"No {entity} found."
            if len(data) == 1:
                return f"Found 1 {entity}."
            return f"Found {len(data)} {entity}s."
        if _is_number(data):
            return f"Total: {format_currency(data, self.config.currency, self.config.locale)}"
        return "Data retrieved successfully."


_default_formatter = ResponseFormatter()


def format_response(
    presentation_type: ResponseType | str | None,
    data: Any,
    chart_type: ChartType | str | None = None,
    explanation: Optional[str] = None,
) -> FormattedResponse:
    return _default_formatter.format_response(presentation_type, data, chart_type, explanation)


def format_as_table(data: Any) -> TableData:
    return _default_formatter.format_as_table(data)


def format_as_line_chart(data: Sequence[Dict[str, Any]], x_axis_key: str = "date", y_axis_key: str = "total", title: Optional[str] = None) -> ChartData:
    return _default_formatter.format_as_line_chart(data, x_axis_key, y_axis_key, title)


def format_as_bar_chart(data: Sequence[Dict[str, Any]], x_axis_key: str = "name", y_axis_keys: Optional[Sequence[str]] = None, title: Optional[str] = None) -> ChartData:
    return _default_formatter.format_as_bar_chart(data, x_axis_key, y_axis_keys, title)


def format_as_pie_chart(
    data: Sequence[Dict[str, Any]],
    name_key: str = "name",
    value_key: str = "value",
    chart_type: ChartType | str = ChartType.DONUT,
    title: Optional[str] = None,
) -> ChartData:
    return _default_formatter.format_as_pie_chart(data, name_key, value_key, chart_type, title)


def generate_summary(data: Any, entity: str) -> str:
    return _default_formatter.generate_summary(data, entity)


__all__ = [
    "ResponseFormatter",
    "format_as_bar_chart",
    "format_as_line_chart",
    "format_as_pie_chart",
    "format_as_table",
    "format_response",
    "generate_summary",
]
