"""
Supabase Record Source for the OEE Engine
=========================================
Production records, stoppages, blocked product, shifts and equipment
segments, fetched from the dashboard's Supabase tables and converted to the
engine's immutable types.

All functions gracefully return empty collections when no database is
configured or a query fails. The engine itself never talks to the store;
callers fetch a snapshot here and hand it over.

Connection: set SUPABASE_URL and SUPABASE_KEY as environment variables.

Tables (the dashboard's schema):
  registros_producao   production records
  paradas              stoppage events
  produtos_bloqueados  blocked-product events
  turnos               shifts (meta_oee = target OEE)
  equipamentos         equipment segments (capacidade_hora = hourly target)
"""

from __future__ import annotations

import logging
from datetime import datetime

from oee_models import (
    BlockedProductEvent,
    EquipmentSegment,
    ProductionRecord,
    Shift,
    StoppageEvent,
    actual_cycle_time_for,
    ideal_cycle_time_for,
)
from oee_shared import DEFAULT_TARGET_OEE, load_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------
_client = None
_segment_cache = None
_segment_cache_ts = None
_CACHE_TTL = 300  # 5 minutes


def get_client():
    """Get Supabase client. Returns None if not configured."""
    global _client
    if _client is not None:
        return _client

    settings = load_settings()
    if not settings.has_store:
        return None

    from supabase import create_client

    try:
        _client = create_client(settings.supabase_url, settings.supabase_key)
    except Exception:
        logger.warning("Could not create Supabase client", exc_info=True)
        return None
    return _client


def set_client(client):
    """Install a client explicitly (or None to reset)."""
    global _client, _segment_cache, _segment_cache_ts
    _client = client
    _segment_cache = None
    _segment_cache_ts = None


def is_connected():
    """Check if database is available."""
    return get_client() is not None


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------
def _num(row, key, default=0.0):
    value = row.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _day(value):
    if hasattr(value, "year") and not isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value)[:10]).date()


def _str_or_none(value):
    return None if value in (None, "") else str(value)


def production_record_from_row(row):
    capacity = _num(row, "capacidade_hora", None)
    equipment = row.get("equipamentos") or {}
    if capacity is None and equipment.get("capacidade_hora") is not None:
        capacity = _num(equipment, "capacidade_hora", None)

    produced = _num(row, "total_produzido")
    actual_minutes = _num(row, "tempo_real")
    ideal = _num(row, "tempo_ciclo_ideal", None)
    if ideal is None or ideal <= 0:
        ideal = ideal_cycle_time_for(capacity)
    actual = _num(row, "tempo_ciclo_real", None)
    if actual is None or actual <= 0:
        actual = actual_cycle_time_for(actual_minutes, produced, ideal)

    return ProductionRecord(
        record_id=str(row["id"]),
        date=_day(row["data"]),
        equipment_id=str(row.get("equipamento_id") or ""),
        shift_id=str(row.get("turno_id") or ""),
        planned_time_minutes=_num(row, "tempo_planejado"),
        actual_time_minutes=actual_minutes,
        total_produced=produced,
        defects=_num(row, "defeitos"),
        target_output=capacity,
        ideal_cycle_time=ideal,
        actual_cycle_time=actual,
    )


def stoppage_from_row(row):
    return StoppageEvent(
        event_id=str(row["id"]),
        date=_day(row.get("data") or row.get("timestamp")),
        shift_id=_str_or_none(row.get("turno_id")),
        equipment_id=_str_or_none(row.get("equipamento_id")),
        duration_minutes=_num(row, "duracao"),
        reason=row.get("motivo") or "",
        category=row.get("categoria") or "unplanned",
        linked_record_id=_str_or_none(row.get("registro_id")),
    )


def blocked_product_from_row(row):
    return BlockedProductEvent(
        event_id=str(row["id"]),
        date=_day(row["data"]),
        shift_id=_str_or_none(row.get("turno_id")),
        equipment_id=_str_or_none(row.get("equipamento_id")),
        quantity=_num(row, "quantidade"),
        reason=row.get("motivo_bloqueio") or "",
        destination=row.get("destino") or "quarantine",
        lot_number=_str_or_none(row.get("numero_lacre")),
        linked_record_id=_str_or_none(row.get("registro_id")),
    )


def shift_from_row(row):
    return Shift(
        shift_id=str(row["id"]),
        name=row.get("nome") or "",
        start_time=str(row.get("hora_inicio") or ""),
        end_time=str(row.get("hora_fim") or ""),
        target_oee=_num(row, "meta_oee", DEFAULT_TARGET_OEE) or DEFAULT_TARGET_OEE,
    )


def segment_from_row(row):
    return EquipmentSegment(
        equipment_id=str(row["id"]),
        name=row.get("nome") or "",
        code=_str_or_none(row.get("codigo")),
        target_output_per_hour=_num(row, "capacidade_hora", None),
        status=row.get("status") or "active",
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def _fetch(table, columns="*", start=None, end=None, equipment_id=None, shift_id=None,
           order=None):
    """Run a filtered select. Returns list of row dicts or empty list."""
    client = get_client()
    if client is None:
        return []

    try:
        query = client.table(table).select(columns)
        if start is not None:
            query = query.gte("data", start.isoformat())
        if end is not None:
            query = query.lte("data", end.isoformat())
        if equipment_id:
            query = query.eq("equipamento_id", equipment_id)
        if shift_id:
            query = query.eq("turno_id", shift_id)
        if order:
            query = query.order(order)
        resp = query.execute()
        return resp.data or []
    except Exception:
        logger.warning("Query on %s failed", table, exc_info=True)
        return []


def _convert(rows, convert, kind):
    out = []
    for row in rows:
        try:
            out.append(convert(row))
        except (KeyError, ValueError):
            logger.warning("Skipping malformed %s row: %r", kind, row.get("id"))
    logger.info("Loaded %d %s", len(out), kind)
    return out


def fetch_production_records(start=None, end=None, equipment_id=None, shift_id=None):
    rows = _fetch("registros_producao", "*, equipamentos(id, nome, capacidade_hora)",
                  start, end, equipment_id, shift_id, order="data")
    return _convert(rows, production_record_from_row, "production records")


def fetch_stoppages(start=None, end=None, equipment_id=None, shift_id=None):
    rows = _fetch("paradas", "*", start, end, equipment_id, shift_id)
    return _convert(rows, stoppage_from_row, "stoppages")


def fetch_blocked_products(start=None, end=None, equipment_id=None, shift_id=None):
    rows = _fetch("produtos_bloqueados", "*", start, end, equipment_id, shift_id)
    return _convert(rows, blocked_product_from_row, "blocked-product events")


def fetch_shifts():
    """Shifts ordered by start time. Never cached: targets may change any time."""
    rows = _fetch("turnos", "id, nome, hora_inicio, hora_fim, meta_oee", order="hora_inicio")
    return _convert(rows, shift_from_row, "shifts")


def fetch_segments():
    """Equipment segments. Cached for 5 minutes."""
    global _segment_cache, _segment_cache_ts

    if _segment_cache is not None and _segment_cache_ts is not None:
        age = (datetime.now() - _segment_cache_ts).total_seconds()
        if age < _CACHE_TTL:
            return _segment_cache

    if get_client() is None:
        return []

    segments = _convert(_fetch("equipamentos"), segment_from_row, "equipment segments")
    if segments:
        _segment_cache = segments
        _segment_cache_ts = datetime.now()
    return segments


def update_shift_target(shift_id, target_oee):
    """Set a shift's target OEE. Returns True/False."""
    client = get_client()
    if client is None:
        return False

    try:
        client.table("turnos").update({"meta_oee": float(target_oee)}).eq("id", shift_id).execute()
        return True
    except Exception:
        logger.warning("Could not update target for shift %s", shift_id, exc_info=True)
        return False
