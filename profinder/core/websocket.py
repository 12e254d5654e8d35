"""
WebSocket manager for live conversations.
Handles Socket.IO connections and streams conversation snapshots to clients.
"""
import asyncio
import logging
from typing import Dict, Optional

import socketio

from profinder.config import settings
from profinder.core.errors import TransportError
from profinder.core.security import SecurityException, actor_from_token
from profinder.schemas.auth import ActorContext

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    WebSocket connection manager using Socket.IO.

    Each joined conversation runs one task that iterates the channel's
    snapshot stream and emits every snapshot to the joining socket. Leaving
    the conversation or disconnecting cancels the task, which closes the
    stream and releases its change subscriptions.
    """

    def __init__(self, store=None):
        """
        Initialize the connection manager.

        Args:
            store: Relationship store; resolved from the app dependencies on
                first use when omitted
        """
        cors_origins = settings.get_allowed_origins_list() if settings.allowed_origins else ["*"]

        self.sio = socketio.AsyncServer(
            async_mode='asgi',
            cors_allowed_origins=cors_origins,
            # Socket.IO logs routine packets at ERROR level; our logger covers real events
            logger=False,
            engineio_logger=False,
            ping_timeout=settings.ws_heartbeat_interval,
            ping_interval=settings.ws_heartbeat_interval // 2,
        )
        self._store = store

        # Track connections: {sid: actor}
        self.connections: Dict[str, ActorContext] = {}

        # Track snapshot streams: {sid: {other_user_id: task}}
        self.streams: Dict[str, Dict[str, asyncio.Task]] = {}

        self._setup_handlers()

    @property
    def store(self):
        if self._store is None:
            from profinder.dependencies import get_store
            self._store = get_store()
        return self._store

    def _setup_handlers(self):
        """Setup Socket.IO event handlers."""
        self.sio.on('connect', self.handle_connect)
        self.sio.on('disconnect', self.handle_disconnect)
        self.sio.on('join_conversation', self.handle_join_conversation)
        self.sio.on('leave_conversation', self.handle_leave_conversation)

    async def handle_connect(self, sid, environ, auth=None):
        """
        Handle client connection.

        Client must provide {'token': <jwt>} as handshake auth.
        """
        token = auth.get('token') if isinstance(auth, dict) else None
        if not token:
            logger.warning(f"Connection rejected - no token: {sid}")
            return False

        try:
            actor = actor_from_token(token)
        except SecurityException as e:
            logger.warning(f"Connection rejected - {e.detail}: {sid}")
            return False

        self.connections[sid] = actor
        logger.info(f"Client connected: {sid} (user: {actor.user_id})")
        return True

    async def handle_disconnect(self, sid, *args):
        """Handle client disconnection; stops every stream of the socket."""
        for other_id in list(self.streams.get(sid, {})):
            await self.stop_stream(sid, other_id)
        self.streams.pop(sid, None)

        actor = self.connections.pop(sid, None)
        if actor:
            logger.info(f"Client disconnected: {sid} (user: {actor.user_id})")

    async def handle_join_conversation(self, sid, data):
        """
        Start streaming a conversation.

        Expected data: {'user_id': '<other user>'}
        """
        actor = self.connections.get(sid)
        if not actor:
            await self.sio.emit('error', {'message': 'Unauthorized'}, to=sid)
            return

        other_id = data.get('user_id') if isinstance(data, dict) else None
        if not other_id or other_id == actor.user_id:
            await self.sio.emit('error', {'message': 'Invalid conversation'}, to=sid)
            return

        sid_streams = self.streams.setdefault(sid, {})
        if other_id in sid_streams and not sid_streams[other_id].done():
            return

        sid_streams[other_id] = asyncio.create_task(self._run_stream(sid, actor, other_id))
        logger.info(f"[join_conversation] {actor.user_id} streaming conversation with {other_id}")

    async def handle_leave_conversation(self, sid, data):
        """
        Stop streaming a conversation.

        Expected data: {'user_id': '<other user>'}
        """
        other_id = data.get('user_id') if isinstance(data, dict) else None
        if other_id:
            await self.stop_stream(sid, other_id)
            await self.sio.emit('left_conversation', {'user_id': other_id}, to=sid)

    async def stop_stream(self, sid: str, other_id: str) -> None:
        """Cancel one stream task and wait for its cleanup."""
        task: Optional[asyncio.Task] = self.streams.get(sid, {}).pop(other_id, None)
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run_stream(self, sid: str, actor: ActorContext, other_id: str) -> None:
        from profinder.services.message_channel import MessageChannel

        stream = MessageChannel(self.store, actor, other_id).snapshots()
        try:
            async for snapshot in stream:
                await self.sio.emit(
                    'conversation_snapshot',
                    snapshot.model_dump(mode='json'),
                    to=sid
                )
        except TransportError as e:
            logger.error(f"Snapshot stream for {sid} failed: {e}")
            await self.sio.emit('error', {'message': 'Conversation temporarily unavailable'}, to=sid)
        except Exception as e:
            logger.error(f"Snapshot stream for {sid} crashed: {type(e).__name__}: {str(e)}", exc_info=True)
            await self.sio.emit('error', {'message': 'Conversation stream stopped'}, to=sid)
        finally:
            await stream.aclose()

    def active_stream_count(self) -> int:
        """Number of running snapshot streams across all sockets."""
        return sum(
            1 for sid_streams in self.streams.values()
            for task in sid_streams.values()
            if not task.done()
        )

    def get_asgi_app(self, fastapi_app):
        """
        Get the ASGI app for Socket.IO wrapping FastAPI.

        Socket.IO wraps FastAPI: clients connect to /socket.io/ and every
        other path falls through to the API.
        """
        return socketio.ASGIApp(self.sio, fastapi_app)


# Global connection manager instance
connection_manager = ConnectionManager()
