# utils/realtime.py
from __future__ import annotations
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Dict, Optional
import logging
import uuid

logger = logging.getLogger(__name__)

CANONICAL_KEYS = {
    "event_id", "emitted_at",
    "experienceId", "userId", "hostId",
    "ticketId", "chatId",
    "status", "statusLabel",
    "seatsRemaining", "participantsStarted",
    "escrowTotal", "released",
    "walletBalance", "amount", "type",
}

STATUS_LABELS = {
    "draft": "Draft",
    "published": "Open",
    "full": "Full",
    "started": "Started",
    "completed": "Completed",
    "cancelled": "Cancelled",
}

def _coalesce(*vals):
    for v in vals:
        if v is not None:
            return v
    return None

def _to_jsonable(obj: Any) -> Any:
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, datetime):
        return obj.isoformat() + ("Z" if obj.tzinfo is None else "")
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_to_jsonable(v) for v in obj]
    return str(obj)

def _canonical_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    status = data.get("status")
    payload = {
        "experienceId": _coalesce(data.get("experienceId"), data.get("experience_id")),
        "userId": _coalesce(data.get("userId"), data.get("user_id")),
        "hostId": _coalesce(data.get("hostId"), data.get("host_id")),
        "ticketId": _coalesce(data.get("ticketId"), data.get("ticket_id")),
        "chatId": _coalesce(data.get("chatId"), data.get("chat_id")),
        "status": status,
        "statusLabel": STATUS_LABELS.get(status) if status else None,
        "seatsRemaining": _coalesce(data.get("seatsRemaining"), data.get("seats_remaining")),
        "participantsStarted": _coalesce(data.get("participantsStarted"), data.get("participants_started")),
        "escrowTotal": _coalesce(data.get("escrowTotal"), data.get("total_coins")),
        "released": data.get("released"),
        "walletBalance": _coalesce(data.get("walletBalance"), data.get("wallet_balance")),
        "amount": data.get("amount"),
        "type": data.get("type"),
    }
    return {k: v for k, v in payload.items() if v is not None}

def emit_wallet_event(
    socketio: Any,
    event: str,
    data: Dict[str, Any],
    *,
    room: Optional[str] = None,
    namespace: Optional[str] = None,
    event_id: Optional[str] = None
) -> Optional[str]:
    """Best-effort emit after a committed write. Never raises."""
    if not socketio:
        logger.warning("emit_wallet_event: SocketIO unavailable; event='%s'", event)
        return None

    try:
        payload = _canonical_payload(data)
        eid = event_id or str(uuid.uuid4())
        full_payload = {
            "event_id": eid,
            "emitted_at": datetime.utcnow().isoformat() + "Z",
            **payload,
        }

        # Allowlist
        filtered_payload = {k: v for k, v in full_payload.items() if k in CANONICAL_KEYS}
        serializable_payload = _to_jsonable(filtered_payload)

        emit_kwargs = {"namespace": namespace} if namespace else {}
        if room:
            socketio.emit(event, serializable_payload, to=room, **emit_kwargs)
        else:
            socketio.emit(event, serializable_payload, **emit_kwargs)

        logger.info(
            "emit_wallet_event: event='%s' room=%s payload_keys=%s",
            event, room, list(serializable_payload.keys())
        )
        return eid

    except Exception as exc:
        logger.exception("emit_wallet_event failed: event='%s' error=%s", event, exc)
        return None

def experience_room(experience_id) -> str:
    return f"experience_{experience_id}"

def wallet_room(user_id) -> str:
    return f"user_{user_id}"
