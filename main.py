"""
FastAPI WebSocket chat room server
Room membership and message fan-out over a single /ws endpoint
"""

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import asyncio
import time
from typing import Optional
import uvicorn

from chatroom import (
    Settings,
    SocketGateway,
    AuthFailure,
    InMemoryMessageStore,
    create_gateway,
    get_settings,
    configure_logging,
    get_logger,
    log_security_event,
    log_system_event,
    log_websocket_event,
    CLOSE_CODE_POLICY_VIOLATION,
    MAINTENANCE_INTERVAL_SECONDS,
)
from chatroom.validators import validate_room_id

logger = get_logger()


async def background_cleanup(gateway: SocketGateway, interval: float = MAINTENANCE_INTERVAL_SECONDS):
    """Periodically drop expired message history"""
    while True:
        try:
            if isinstance(gateway.store, InMemoryMessageStore):
                await gateway.store.cleanup_expired()
            await asyncio.sleep(interval)

        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"Background cleanup error: {e}")
            await asyncio.sleep(interval)


def create_app(settings: Optional[Settings] = None, gateway: Optional[SocketGateway] = None) -> FastAPI:
    """
    Build the ASGI application

    Args:
        settings: Server settings (read from the environment when omitted)
        gateway: Pre-built gateway, mainly for tests

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    gateway = gateway or create_gateway(settings)
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Chat room server starting up...")
        cleanup_task = asyncio.create_task(background_cleanup(gateway))

        yield

        cleanup_task.cancel()
        logger.info("Chat room server shutting down...")

    app = FastAPI(
        title="Chat Room Server",
        description="Real-time chat rooms with membership tracking and message fan-out",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        try:
            stats = await gateway.stats()
            return {
                "status": "healthy",
                "timestamp": time.time(),
                "connections": stats["connections"],
                "rooms": stats["rooms"],
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            raise HTTPException(status_code=503, detail="Service unavailable")

    @app.get("/stats")
    async def get_stats():
        """Get server statistics"""
        try:
            return {
                "server": "Chat Room Server",
                "timestamp": time.time(),
                **(await gateway.stats()),
            }
        except Exception as e:
            logger.error(f"Stats endpoint failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to get stats")

    @app.get("/rooms")
    async def list_rooms():
        return {"rooms": await gateway.directory.rooms_info()}

    @app.get("/rooms/{room_id}/messages")
    async def room_history(room_id: str):
        """Recent messages of a room, oldest first"""
        is_valid, error_msg = validate_room_id(room_id)
        if not is_valid:
            raise HTTPException(status_code=400, detail=error_msg)
        if gateway.store is None:
            raise HTTPException(status_code=404, detail="Message history is disabled")
        messages = await gateway.store.history(room_id)
        return {"room_id": room_id, "messages": [m.to_frame() for m in messages]}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Main WebSocket endpoint; credentials come from the query string"""
        await websocket.accept()
        client_ip = websocket.client.host if websocket.client else "unknown"
        log_system_event("websocket_connection", f"New connection from {client_ip}")

        try:
            session = await gateway.connect(websocket, dict(websocket.query_params), client_ip)
        except AuthFailure as e:
            await websocket.send_json(e.to_frame())
            await websocket.close(code=CLOSE_CODE_POLICY_VIOLATION, reason="Authentication failed")
            return

        try:
            await session.send({
                "event": "connected",
                "connection_id": session.connection_id,
                "user": session.user,
                "rooms": sorted(await gateway.registry.joined_rooms(session.connection_id)),
            })

            while True:
                text = await websocket.receive_text()
                log_websocket_event("frame_received", session.connection_id, f"length={len(text)}")
                reply = await session.handle_text(text)
                await session.send(reply)

        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: {session.connection_id}")

        except Exception as e:
            logger.error(f"WebSocket error for {session.connection_id}: {e}")
            log_security_event("websocket_error", {
                "client_ip": client_ip,
                "error": str(e)
            })

        finally:
            await session.disconnect()
            logger.info(f"Cleanup completed for {session.connection_id}")

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    logger.info("Starting chat room server...")

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        access_log=True,
        ws_ping_interval=20,
        ws_ping_timeout=10,
    )
