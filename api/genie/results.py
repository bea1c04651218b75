import logging
from typing import Any

import pandas as pd

# Databricks SQL type names; values arrive as strings in data_array.
INTEGER_TYPES = {"BYTE", "SHORT", "INT", "LONG"}
FLOAT_TYPES = {"FLOAT", "DOUBLE"}


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _statement(payload: dict) -> dict:
    inner = payload.get("statement_response")
    return inner if isinstance(inner, dict) else payload


def _is_missing(value: Any) -> bool:
    return value is None or (pd.api.types.is_scalar(value) and pd.isna(value))


def _column_values(series: pd.Series, type_name: str) -> list:
    if type_name in INTEGER_TYPES:
        # Nullable Int64 keeps 356 as 356 when the column also holds nulls.
        values = pd.to_numeric(series, errors="coerce", dtype_backend="numpy_nullable")
        return [None if _is_missing(v) else int(v) for v in values]
    if type_name in FLOAT_TYPES:
        values = pd.to_numeric(series, errors="coerce")
        return [None if _is_missing(v) else float(v) for v in values]
    # DECIMAL stays a string; floats would drop digits on wide values.
    return [None if _is_missing(v) else v for v in series]


def shape_query_result(payload: Any) -> Any:
    """
    Reshape a Genie query-result payload into {"schema": [...], "rows": [...]}.

    schema entries are {"name", "type"}; rows are positional lists. Integer
    and floating point columns are converted from their string encoding.
    Payloads without a usable statement manifest are returned unchanged.
    """
    if not isinstance(payload, dict):
        return payload

    stmt = _statement(payload)
    columns = _as_dict(_as_dict(stmt.get("manifest")).get("schema")).get("columns")
    if not isinstance(columns, list):
        return payload

    schema = []
    for i, col in enumerate(columns):
        col = _as_dict(col)
        schema.append({
            "name": col.get("name") or f"col_{i}",
            "type": str(col.get("type_name") or "").upper() or None,
        })

    rows = _as_dict(stmt.get("result")).get("data_array") or []
    if not isinstance(rows, list) or not rows:
        return {"schema": schema, "rows": []}

    try:
        # Positional labels keep duplicate column names apart.
        df = pd.DataFrame(rows, columns=range(len(schema)), dtype=object)
    except (ValueError, TypeError) as e:
        logging.warning("Query result rows do not match schema; returning raw rows: %s", e)
        return {"schema": schema, "rows": rows}

    values = [_column_values(df[i], col["type"]) for i, col in enumerate(schema)]
    return {"schema": schema, "rows": [list(row) for row in zip(*values)]}
