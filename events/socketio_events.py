# socketio_events.py

from flask import current_app
from flask_socketio import SocketIO, join_room, leave_room, emit
from datetime import datetime

from utils.realtime import experience_room, wallet_room

socketio: SocketIO | None = None  # Global socket instance

def register_socketio_events(socket: SocketIO):
    """
    Register WebSocket events with the given SocketIO instance.
    Clients subscribe to per-experience and per-wallet rooms.
    """
    global socketio
    socketio = socket

    @socketio.on("connect")
    def handle_connect():
        current_app.logger.info("Client connected to WebSocket")
        emit("server_hello", {"ts": datetime.utcnow().isoformat() + "Z"})

    @socketio.on("disconnect")
    def handle_disconnect():
        current_app.logger.info("Client disconnected from WebSocket")

    @socketio.on("join_experience")
    def handle_join_experience(data):
        """
        Example client emit:
            socket.emit("join_experience", { experience_id: "..." });
        """
        experience_id = (data or {}).get("experience_id")
        if not experience_id:
            current_app.logger.warning("join_experience called without experience_id")
            return
        join_room(experience_room(experience_id))
        emit("experience_subscribed", {"experience_id": experience_id})

    @socketio.on("leave_experience")
    def handle_leave_experience(data):
        experience_id = (data or {}).get("experience_id")
        if experience_id:
            leave_room(experience_room(experience_id))

    @socketio.on("join_wallet")
    def handle_join_wallet(data):
        """
        Example client emit:
            socket.emit("join_wallet", { user_id: "uid" });
        """
        user_id = (data or {}).get("user_id")
        if not user_id:
            current_app.logger.warning("join_wallet called without user_id")
            return
        join_room(wallet_room(user_id))
        emit("wallet_subscribed", {"user_id": user_id})

    # Health-check: request/response ping
    @socketio.on("ping_health")
    def handle_ping_health(payload=None):
        data = payload or {}
        emit("pong_health", {
            "status": "ok",
            "nonce": data.get("nonce"),
            "server_ts": datetime.utcnow().isoformat() + "Z",
        })
