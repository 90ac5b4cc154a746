"""
mock_service.daemon
-------------------
This module implements a mock environments service REST API using FastAPI.
It stores resolved environments in memory, hands out open sessions
with an expiry, and serves the resolved properties for a session.
Intended for local development, testing, and demonstration purposes.
"""
import json
import logging
import socket
import sys
import uuid
from datetime import datetime, timezone
from typing import Any

import typer
import uvicorn
from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from common.app_setup import setup_logging
from common.errors import LifetimeError
from environments.lifetime import parse_lifetime
from environments.models import Diagnostic

API_PREFIX = "/api/preview/environments"


# Pydantic model for a stored environment
class StoredEnvironment(BaseModel):
    properties: dict[str, Any] = Field(default_factory=dict)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class OpenSession(BaseModel):
    id: str
    org: str
    env_name: str
    expires_at: datetime


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build a service with its own empty in-memory store."""
    app = FastAPI()
    # In-memory stores
    environments: dict[tuple[str, str], StoredEnvironment] = {}
    sessions: dict[str, OpenSession] = {}
    app.state.environments = environments
    app.state.sessions = sessions

    def get_server():
        # Helper to get the running server instance
        return getattr(app.state, "uvicorn_server", None)

    @app.post("/shutdown")
    def shutdown():
        """Shutdown the server gracefully."""
        logger.info("Shutdown requested via /shutdown endpoint.")
        server = get_server()
        if server:
            server.should_exit = True
        return {"message": "Server shutting down"}

    @app.get("/status")
    def status():
        """Health/status endpoint for the mock service."""
        server = get_server()
        state = "shutting_down" if server and server.should_exit else "ok"
        return {"status": state, "environments": len(environments), "sessions": len(sessions)}

    @app.put(API_PREFIX + "/{org}/{env_name}", response_model=StoredEnvironment)
    def put_environment(org: str, env_name: str, env: StoredEnvironment = Body(...)) -> StoredEnvironment:
        """Create or replace the resolved content of an environment."""
        environments[(org, env_name)] = env
        logger.info(f"Stored environment {org}/{env_name} ({len(env.properties)} properties, "
                    f"{len(env.diagnostics)} diagnostics)")
        return env

    @app.delete(API_PREFIX + "/{org}/{env_name}", status_code=204)
    def delete_environment(org: str, env_name: str):
        if environments.pop((org, env_name), None) is None:
            raise HTTPException(status_code=404, detail="environment not found")

    @app.post(API_PREFIX + "/{org}/{env_name}/open")
    def open_environment(org: str, env_name: str, duration: str = Query("2h0m0s")):
        """Open a session; environments with diagnostics answer 400 with them."""
        env = environments.get((org, env_name))
        if env is None:
            logger.warning(f"Environment not found: {org}/{env_name}")
            raise HTTPException(status_code=404, detail="environment not found")
        try:
            lifetime = parse_lifetime(duration)
        except LifetimeError as e:
            raise HTTPException(status_code=400, detail=e.message)
        if env.diagnostics:
            logger.info(f"Open of {org}/{env_name} failed with {len(env.diagnostics)} diagnostics")
            return JSONResponse(status_code=400, content={
                "code": 400,
                "message": "failed to evaluate environment",
                "diagnostics": [d.model_dump(mode="json", exclude_none=True) for d in env.diagnostics],
            })
        session = OpenSession(
            id=uuid.uuid4().hex,
            org=org,
            env_name=env_name,
            expires_at=datetime.now(timezone.utc) + lifetime,
        )
        sessions[session.id] = session
        logger.info(f"Opened {org}/{env_name} as session {session.id} until {session.expires_at.isoformat()}")
        return {"id": session.id}

    @app.get(API_PREFIX + "/{org}/{env_name}/open/{session_id}")
    def get_open_environment(org: str, env_name: str, session_id: str):
        """Return the resolved properties for an open, unexpired session."""
        session = sessions.get(session_id)
        if session is None or (session.org, session.env_name) != (org, env_name):
            raise HTTPException(status_code=404, detail="open session not found")
        if session.expires_at <= datetime.now(timezone.utc):
            sessions.pop(session_id, None)
            raise HTTPException(status_code=404, detail="open session expired")
        env = environments.get((org, env_name))
        if env is None:
            raise HTTPException(status_code=404, detail="environment not found")
        return {"properties": env.properties}

    return app


app = create_app()

app_cli = typer.Typer()


@app_cli.command()
def run(port: int = typer.Option(None, help="Port to run the server on (auto if not set)")):
    """Run the FastAPI app using Uvicorn on localhost, reporting the actual port used."""
    setup_logging(app_name="escopen-mock", daemon=True)
    if port is None or port == 0:
        # Bind to port 0 to get a free port, then close and reuse
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(('127.0.0.1', 0))
            port = s.getsockname()[1]
        logger.info(f"Selected port: {port}")
        print(json.dumps({"event": "port_selected", "port": port}), flush=True)
    else:
        # Check if port is available
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(('127.0.0.1', port))
            except OSError:
                logger.error(f"ERROR: Port {port} is already in use.")
                sys.exit(98)  # 98 = EADDRINUSE
        logger.info(f"Using port: {port}")
        print(json.dumps({"event": "port_used", "port": port}), flush=True)
    config = uvicorn.Config(app, host="127.0.0.1", port=port, log_level="info")
    server = uvicorn.Server(config)
    app.state.uvicorn_server = server  # Store server instance for shutdown
    logger.info(f"Starting Uvicorn server on port {port}")
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt in main thread")
    logger.info("Server stopped, exiting process")


if __name__ == "__main__":
    app_cli()
