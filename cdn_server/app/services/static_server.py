import os
from pathlib import Path
from typing import List

from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.types import Scope

from cdn_server.logger_config import setup_logger

logger = setup_logger(__name__)

NOT_FOUND_PAGE = """<!DOCTYPE html>
<html>
<head><title>404 Not Found</title></head>
<body>
<h1>404</h1>
<p>The requested file was not found on the CDN.</p>
</body>
</html>
"""


class StaticFileServer:
    """Serve uploaded files, falling back to static assets, then a 404 page.

    Lookup, ETag/Last-Modified handling and Range requests come from
    Starlette's ``StaticFiles``; this class only chains the roots. HTML mode
    stays off so a root's own ``404.html`` can never end the chain, and
    directory ``index.html`` files are looked up here instead.
    """

    def __init__(self, upload_dir: Path, static_dir: Path, not_found_page: str = NOT_FOUND_PAGE):
        self.roots: List[StaticFiles] = [
            StaticFiles(directory=upload_dir, check_dir=False),
            StaticFiles(directory=static_dir, check_dir=False),
        ]
        self.not_found_page = not_found_page

    async def serve(self, scope: Scope) -> Response:
        for root in self.roots:
            path = root.get_path(scope)
            for candidate in (path, os.path.join(path, "index.html")):
                try:
                    return await root.get_response(candidate, scope)
                except HTTPException as e:
                    if e.status_code != 404:
                        raise
                except OSError as e:
                    logger.error(f"Failed to serve {scope['path']}: {str(e)}", exc_info=True)
                    return PlainTextResponse(f"Failed to serve files: {e}", status_code=500)

        return HTMLResponse(self.not_found_page, status_code=404)
