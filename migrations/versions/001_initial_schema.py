"""Create machines, metrics, alert_rules and alerts; seed default rules.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

# (name, metric_name, operator, threshold_value, severity)
DEFAULT_ALERT_RULES = [
    # Motor winding temperature
    ("Motor Temperature High", "temperature", ">", 70.0, "warning"),
    ("Motor Temperature Critical", "temperature", ">", 80.0, "critical"),
    # Bearing health
    ("Vibration Warning", "vibration", ">", 5.0, "warning"),
    ("Vibration Critical", "vibration", ">", 7.0, "critical"),
    # Discharge pressure
    ("Discharge Pressure High", "pressure", ">", 5.0, "warning"),
    ("Discharge Pressure Critical", "pressure", ">", 5.5, "critical"),
    ("Discharge Pressure Low", "pressure", "<", 2.0, "warning"),
    # Motor load
    ("Motor Current High", "current", ">", 140.0, "warning"),
    ("Motor Current Critical", "current", ">", 170.0, "critical"),
    # Motor speed
    ("RPM Low", "rpm", "<", 1700.0, "warning"),
    ("RPM High", "rpm", ">", 1800.0, "warning"),
    # Power quality
    ("Voltage Low", "voltage", "<", 440.0, "warning"),
    ("Voltage High", "voltage", ">", 480.0, "critical"),
]

alert_rules_table = sa.table(
    "alert_rules",
    sa.column("name", sa.String),
    sa.column("metric_name", sa.String),
    sa.column("condition_type", sa.String),
    sa.column("threshold_value", sa.Float),
    sa.column("operator", sa.String),
    sa.column("severity", sa.String),
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "machines",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(100), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_machines_status", "machines", ["status"])

    op.create_table(
        "metrics",
        sa.Column("time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("machine_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("metric_name", sa.String(100), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("quality", sa.String(20), nullable=False, server_default="good"),
        sa.PrimaryKeyConstraint("time", "machine_id", "metric_name", name="pk_metrics"),
    )
    # Hypertable only where TimescaleDB is installed; plain table otherwise
    op.execute(sa.text(
        "DO $$ BEGIN "
        "IF EXISTS (SELECT 1 FROM pg_extension WHERE extname = 'timescaledb') THEN "
        "PERFORM create_hypertable('metrics', 'time', "
        "chunk_time_interval => INTERVAL '1 hour', if_not_exists => TRUE); "
        "END IF; "
        "END $$"
    ))
    op.create_index(
        "ix_metrics_machine_name_time",
        "metrics",
        ["machine_id", "metric_name", "time"],
    )
    op.create_index("ix_metrics_name_time", "metrics", ["metric_name", "time"])

    op.create_table(
        "alert_rules",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("metric_name", sa.String(100), nullable=False),
        sa.Column(
            "condition_type",
            sa.String(50),
            nullable=False,
            server_default="threshold",
        ),
        sa.Column("threshold_value", sa.Float(), nullable=True),
        sa.Column("operator", sa.String(10), nullable=True),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
    )

    op.create_table(
        "alerts",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("machine_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("rule_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "acknowledged",
            sa.Boolean(),
            nullable=False,
            server_default="false",
        ),
        sa.Column("acknowledged_by", sa.String(255), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    # Index for listing open alerts
    op.create_index(
        "ix_alerts_acknowledged_created",
        "alerts",
        ["acknowledged", "created_at"],
    )

    # Deduplication: at most one open alert per (machine, rule).
    # Alert inserts use ON CONFLICT against this index.
    op.create_index(
        "uq_alerts_open_machine_rule",
        "alerts",
        ["machine_id", "rule_id"],
        unique=True,
        postgresql_where=sa.text("acknowledged = false"),
    )

    _seed_default_rules()


def _seed_default_rules() -> None:
    """Insert the default threshold rules that are not present yet."""
    conn = op.get_bind()
    existing = {
        (row.name, row.metric_name)
        for row in conn.execute(
            sa.select(alert_rules_table.c.name, alert_rules_table.c.metric_name)
        )
    }

    missing = [
        {
            "name": name,
            "metric_name": metric_name,
            "condition_type": "threshold",
            "threshold_value": threshold_value,
            "operator": operator,
            "severity": severity,
        }
        for name, metric_name, operator, threshold_value, severity in DEFAULT_ALERT_RULES
        if (name, metric_name) not in existing
    ]
    if missing:
        op.bulk_insert(alert_rules_table, missing)


def downgrade() -> None:
    op.drop_index("uq_alerts_open_machine_rule", table_name="alerts")
    op.drop_index("ix_alerts_acknowledged_created", table_name="alerts")
    op.drop_table("alerts")
    op.drop_table("alert_rules")
    op.drop_index("ix_metrics_name_time", table_name="metrics")
    op.drop_index("ix_metrics_machine_name_time", table_name="metrics")
    op.drop_table("metrics")
    op.drop_index("ix_machines_status", table_name="machines")
    op.drop_table("machines")
