"""Landing page served at ``/``."""

from __future__ import annotations

from html import escape

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from dmdb_api.dependencies import RuntimeDep

router = APIRouter(tags=["landing"])

_LANDING_PAGE = """<html>
<head><title>Dmdb Exporter</title></head>
<body>
<h1>Dmdb Exporter</h1>
<p><a href='{telemetry_path}'>Metrics</a></p>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
async def landing(runtime: RuntimeDep) -> HTMLResponse:
    return HTMLResponse(_LANDING_PAGE.format(telemetry_path=escape(runtime.settings.telemetry_path, quote=True)))
