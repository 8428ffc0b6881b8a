"""Definición de tablas del servicio de vida útil de herramientas.

Las tablas se crean con ``ensure_schema`` al arrancar. Las restricciones
únicas son parte del contrato de concurrencia:

- ``tool_usage_logs(tool_id, sequence_no)``: append atómico del ledger.
- ``tool_alerts(tool_id, alert_type)`` filtrado a estados abiertos:
  como máximo una alerta abierta por herramienta y nivel. Requiere índices
  filtrados: solo SQLite, PostgreSQL y SQL Server (ver ``SUPPORTED_BACKENDS``).
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    text,
)

metadata = MetaData()

OPEN_ALERT_CLAUSE = text("alert_status IN ('PENDING', 'SENT')")

# Backends con índices únicos parciales/filtrados.
SUPPORTED_BACKENDS = ("sqlite", "postgresql", "mssql")


master_tools = Table(
    "master_tools",
    metadata,
    Column("tool_id", Integer, primary_key=True, autoincrement=False),
    Column("tool_name", String(200), nullable=False),
    Column("holder_name", String(200), nullable=False, default=""),
    Column("atc_pocket_no", String(50), nullable=False, default=""),
    Column("tool_room_no", String(50), nullable=False, default=""),
    Column("tool_life_threshold", Float, nullable=False),
    Column("status", String(30), nullable=False, default="ACTIVE"),
    Column("supervisor_email", String(254), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("tool_life_threshold > 0", name="ck_master_tools_threshold"),
)


tool_usage_logs = Table(
    "tool_usage_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Sin FK a master_tools: borrar una herramienta deja el historial huérfano.
    Column("tool_id", Integer, nullable=False, index=True),
    Column("tool_name", String(200), nullable=False),
    Column("sequence_no", Integer, nullable=False),
    Column("event_type", String(10), nullable=False, default="USAGE"),
    Column("component_id", String(100), nullable=False),
    Column("no_of_holes", Float, nullable=False),
    Column("cutting_length", Float, nullable=False),
    Column("usage_score", Float, nullable=False),
    Column("cumulative_total_before", Float, nullable=False),
    Column("cumulative_total_after", Float, nullable=False),
    Column("tool_life_threshold", Float, nullable=False),
    Column("usage_percentage", Float, nullable=False, default=0.0),
    Column("remaining_life", Float, nullable=False, default=0.0),
    Column("alert_type", String(10), nullable=False, default="NONE"),
    Column("alert_triggered", Boolean, nullable=False, default=False),
    Column("operator_id", String(100), nullable=True),
    Column("notes", Text, nullable=True),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    UniqueConstraint("tool_id", "sequence_no", name="ux_usage_tool_sequence"),
)


tool_alerts = Table(
    "tool_alerts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tool_id", Integer, nullable=False, index=True),
    Column("tool_name", String(200), nullable=False),
    Column("tool_life_threshold", Float, nullable=False),
    Column("cumulative_usage", Float, nullable=False),
    Column("alert_type", String(10), nullable=False),
    Column("alert_severity", String(10), nullable=False),
    Column("usage_percentage", Float, nullable=False),
    Column("remaining_life", Float, nullable=False),
    Column("components_used", JSON, nullable=False),
    Column("supervisor_email", String(254), nullable=True),
    Column("alert_status", String(15), nullable=False, default="PENDING"),
    Column("alert_message", Text, nullable=False),
    Column("alert_description", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
    Column("sent_at", DateTime(timezone=True), nullable=True),
    Column("acknowledged_at", DateTime(timezone=True), nullable=True),
)

open_alert_index = Index(
    "ux_alerts_open_tool_tier",
    tool_alerts.c.tool_id,
    tool_alerts.c.alert_type,
    unique=True,
    sqlite_where=OPEN_ALERT_CLAUSE,
    postgresql_where=OPEN_ALERT_CLAUSE,
    mssql_where=OPEN_ALERT_CLAUSE,
)


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("username", String(100), nullable=False, unique=True),
    Column("role", String(20), nullable=False, default="User"),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("push_notifications_enabled", Boolean, nullable=False, default=True),
)


user_device_tokens = Table(
    "user_device_tokens",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("token", String(500), nullable=False),
    Column("device_id", String(200), nullable=False),
    Column("device_type", String(20), nullable=False, default="android"),
    Column("last_used", DateTime(timezone=True), nullable=True),
)


tool_stocks = Table(
    "tool_stocks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tool_name", String(200), nullable=False),
    Column("atc_pocket_no", String(50), nullable=False, default=""),
    Column("tool_room_no", String(50), nullable=False, default=""),
    Column("current_stock", Integer, nullable=False, default=0),
    Column("minimum_stock", Integer, nullable=False, default=5),
    Column("maximum_stock", Integer, nullable=False, default=50),
    Column("reorder_level", Integer, nullable=False, default=10),
    Column("reorder_quantity", Integer, nullable=False, default=20),
    Column("unit", String(30), nullable=False, default="pieces"),
    Column("status", String(15), nullable=False, default="in_stock"),
    Column("location", String(100), nullable=False, default="Tool Room"),
    Column("cost_per_unit", Float, nullable=False, default=0.0),
    Column("notes", Text, nullable=False, default=""),
    Column("last_updated_by_name", String(200), nullable=True),
    Column("last_restock_date", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("tool_name", "atc_pocket_no", name="ux_tool_stocks_name_pocket"),
    CheckConstraint("current_stock >= 0", name="ck_tool_stocks_non_negative"),
)
