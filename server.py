import asyncio
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response

from linuxfr_epub.models import log, ConversionError, CONTENT_TYPE
from linuxfr_epub.core import converter as core
from linuxfr_epub.core.settings import get_settings

app = FastAPI()
app.state.settings = get_settings()

@app.middleware("http")
async def log_requests(request, call_next):
    log.info(f"Incoming request: {request.method} {request.url}")
    response = await call_next(request)
    return response

# Returns 200 OK if the server is running (for monitoring)
@app.get("/status", response_class=PlainTextResponse)
async def status(): return "OK"

async def content(request: Request) -> Response:
    settings = request.app.state.settings
    path = request.url.path
    try:
        body, url = await asyncio.wait_for(core.build_epub(path, settings), timeout=settings.request_timeout)
    except ConversionError as e:
        log.warning(f"Not found {path}: {e}")
        raise HTTPException(status_code=404, detail="Not Found")
    except asyncio.TimeoutError:
        log.error(f"Deadline of {settings.request_timeout}s exceeded for {path}")
        raise HTTPException(status_code=504, detail="Upstream Timeout")

    return Response(content=body, media_type=CONTENT_TYPE, headers={"Link": f'<{url}>; rel="canonical"'})

for route in (
    "/news/{slug}.epub",
    "/users/{user}/journaux/{slug}.epub",
    "/forums/{forum}/posts/{slug}.epub",
    "/sondages/{slug}.epub",
    "/suivi/{slug}.epub",
    "/wiki/{slug}.epub",
):
    app.add_api_route(route, content, methods=["GET"])

if __name__ == "__main__":
    host, _, port = app.state.settings.address.rpartition(":")
    uvicorn.run(app, host=host, port=int(port))
