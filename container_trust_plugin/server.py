"""
server.py

Docker authorization plugin endpoints. The daemon activates the plugin once,
then posts every API call it is about to run to AuthZReq and every response to
AuthZRes, waiting for a verdict each time.
"""
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .audit import audit
from .console import log_block, log_info
from .decision import Collaborators, Decision, InterceptedRequest, decide

PLUGIN_MIMETYPE = "application/vnd.docker.plugins.v1.2+json"


class AuthZRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user: str = Field("", alias="User")
    user_authn_method: str = Field("", alias="UserAuthNMethod")
    request_method: str = Field("", alias="RequestMethod")
    request_uri: str = Field("", alias="RequestUri")


def plugin_response(body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(body, media_type=PLUGIN_MIMETYPE)


def to_response(decision: Decision) -> Dict[str, Any]:
    body: Dict[str, Any] = {"Allow": decision.allow}
    if decision.message:
        body["Msg"] = decision.message
    if decision.error:
        body["Err"] = decision.error
    return body


def report(request: InterceptedRequest, decision: Decision, audit_log: Optional[str]) -> None:
    if not decision.pull:
        return
    image = decision.image or request.uri
    if decision.allow:
        log_info(f"Pull of '{image}' allowed (digest {decision.digest})")
    else:
        log_block(f"Pull of '{image}' denied: {decision.reason}")
    if audit_log:
        audit(audit_log, request, decision)


def create_app(
    collaborators: Collaborators,
    enabled: bool = True,
    audit_log: Optional[str] = None,
) -> FastAPI:
    app = FastAPI(title="container-trust-plugin", version=__version__)

    @app.post("/Plugin.Activate")
    def activate() -> JSONResponse:
        return plugin_response({"Implements": ["authz"]})

    # Plain functions run on the worker thread pool: one blocked pull
    # verdict never holds up another request.
    @app.post("/AuthZPlugin.AuthZReq")
    def authz_request(body: AuthZRequest) -> JSONResponse:
        if not enabled:
            return plugin_response({"Allow": True})
        request = InterceptedRequest(method=body.request_method, uri=body.request_uri)
        decision = decide(request, collaborators)
        report(request, decision, audit_log)
        return plugin_response(to_response(decision))

    @app.post("/AuthZPlugin.AuthZRes")
    def authz_response(body: AuthZRequest) -> JSONResponse:
        return plugin_response({"Allow": True})

    return app


def serve(app: FastAPI, socket_path: str, log_level: str = "info") -> None:
    uvicorn.run(app, uds=socket_path, log_level=log_level)
