from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cdn_server.config import settings
from cdn_server.app.errors import CdnError, BadRequestError, MISSING_FIELD
from cdn_server.app.models.responses import MessageResponse, UploadResponse
from cdn_server.app.services.authorizer import SharedTokenAuthorizer
from cdn_server.app.services.filename_generator import FilenameGenerator
from cdn_server.app.services.multipart_reader import FirstFieldReader
from cdn_server.app.services.static_server import StaticFileServer
from cdn_server.app.services.storage_manager import StorageManager
from cdn_server.logger_config import setup_logger

logger = setup_logger()

HOME_PAGE = """<!DOCTYPE html>
<html>
<head><title>CDN</title></head>
<body><h1>CDN Home Page</h1></body>
</html>
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    upload_dir = Path(settings.UPLOAD_DIR)

    app.state.storage_manager = StorageManager(upload_dir, Path(settings.TEMP_DIR), settings.MAX_UPLOAD_SIZE)
    await app.state.storage_manager.initialize()
    app.state.authorizer = SharedTokenAuthorizer(settings.AUTH_TOKEN)
    app.state.filename_generator = FilenameGenerator()
    app.state.static_server = StaticFileServer(upload_dir, Path(settings.STATIC_DIR))
    app.state.cdn_url = settings.CDN_URL.rstrip("/")

    logger.info("[Server Initialized]")
    logger.info(f"Upload directory: {upload_dir}")
    logger.info(f"Public URL: {app.state.cdn_url}")
    logger.info(f"Maximum upload size: {settings.MAX_UPLOAD_SIZE} bytes")
    yield
    logger.info("Shutting down CDN server")


app = FastAPI(title="CDN Server", lifespan=lifespan)

bearer_scheme = HTTPBearer(auto_error=False)


@app.exception_handler(CdnError)
async def cdn_error_handler(request: Request, exc: CdnError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def require_authorization(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
):
    """Check the bearer token against the configured authorizer."""
    token = credentials.credentials if credentials else None
    request.app.state.authorizer.authorize(token)


@app.get("/", response_class=HTMLResponse)
async def get_root():
    return HOME_PAGE


@app.post("/upload", response_model=UploadResponse, dependencies=[Depends(require_authorization)])
async def upload_file(request: Request, directory: Optional[str] = None):
    """Store the first field of a multipart form under ``directory``.

    Args:
        directory: Logical directory under the upload root, e.g. ``pics/2024``
    """
    storage_manager = request.app.state.storage_manager

    logger.info(f"Receiving upload request for directory: {directory!r}")

    reader = FirstFieldReader(request.headers.get("content-type"), request.stream())
    field = await reader.read_field()
    if field is None:
        raise BadRequestError(MISSING_FIELD)

    filename = field.filename or request.app.state.filename_generator.generate()
    target = storage_manager.upload_path(directory, filename)
    logger.debug(f"Resolved upload target: {target.path}")

    await storage_manager.ensure_directory(target.parent)
    content_size = await storage_manager.save_stream(target.path, reader.iter_data())

    logger.info(f"Successfully uploaded {target.relative} ({content_size} bytes)")
    return UploadResponse(
        full_url=f"{request.app.state.cdn_url}{target.relative}",
        filename=filename,
        path=target.relative,
    )


@app.delete(
    "/delete/{file_path:path}",
    response_model=MessageResponse,
    dependencies=[Depends(require_authorization)],
)
async def delete_file(file_path: str, request: Request):
    """Delete a stored file by its server-relative path."""
    storage_manager = request.app.state.storage_manager
    logger.info(f"Receiving delete request for path: {file_path}")

    target = storage_manager.stored_path(file_path)
    await storage_manager.delete_file(target.path)

    logger.info(f"Successfully deleted: {target.relative}")
    return MessageResponse(message="File successfully deleted")


@app.api_route("/{file_path:path}", methods=["GET", "HEAD"], include_in_schema=False)
async def serve_file(file_path: str, request: Request):
    return await request.app.state.static_server.serve(request.scope)


if __name__ == "__main__":
    logger.info("Starting CDN server...")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
