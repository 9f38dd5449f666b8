# surety_oracle/server.py
"""
Operator-facing HTTP surface. Liveness only, no business semantics.
"""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

VERSION = "1.0.0"


def create_app(service) -> FastAPI:
    app = FastAPI(
        title="Flight Surety Oracle Coordinator",
        description="Registers simulated oracles and answers flight status requests",
        version=VERSION,
    )

    @app.get("/health")
    def health():
        body = service.health()
        body["version"] = VERSION
        return JSONResponse(body, status_code=200 if service.ready else 503)

    @app.get("/api")
    def api():
        return {"message": "An API for use with your Dapp!"}

    return app
