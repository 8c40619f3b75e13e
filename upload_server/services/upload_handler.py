import logging

from fastapi import Request
from fastapi.responses import Response, StreamingResponse

from upload_server.logger_config import LOGGER_NAME
from upload_server.services.content_types import content_type_for
from upload_server.services.errors import Forbidden, MethodNotAllowed
from upload_server.services.file_store import FileStore
from upload_server.services.mac_verifier import MacVerifier
from upload_server.services.path_resolver import ConfinedPath, PathResolver

logger = logging.getLogger(LOGGER_NAME)

ALLOWED_METHODS = ", ".join(["OPTIONS", "HEAD", "GET", "PUT"])


def declared_content_length(request: Request) -> int:
    """Return the Content-Length the client declared for its upload."""
    content_length = request.headers.get("content-length")
    if content_length is None:
        raise Forbidden("Missing Content-Length header")
    if not (content_length.isascii() and content_length.isdigit()):
        raise Forbidden("Invalid Content-Length header")
    return int(content_length)


class UploadRequestHandler:
    """Serves one request against the upload store.

    PUT needs a valid token; GET and HEAD are open to anyone who knows the
    URL. No state is kept between requests.
    """

    def __init__(self, path_resolver: PathResolver, mac_verifier: MacVerifier, file_store: FileStore):
        self.path_resolver = path_resolver
        self.mac_verifier = mac_verifier
        self.file_store = file_store

    async def handle(self, request: Request) -> Response:
        # scope["path"] is already percent-decoded; request.url would re-split it on "#" and "?"
        url_path = request.scope["path"]
        logger.info(f"Incoming request: {request.method} {url_path}")

        if request.method == "OPTIONS":
            return Response(headers={"Allow": ALLOWED_METHODS})
        if request.method not in ("PUT", "GET", "HEAD"):
            logger.info(f"Invalid method {request.method} for access to {url_path}")
            raise MethodNotAllowed(headers={"Allow": ALLOWED_METHODS})

        path = self.path_resolver.resolve(url_path)
        if request.method == "PUT":
            return await self.put(request, path)
        return await self.get(request, path)

    async def put(self, request: Request, path: ConfinedPath) -> Response:
        content_length = declared_content_length(request)
        self.mac_verifier.authenticate(path.relative, content_length, request.query_params)

        await self.file_store.create(path, request.stream(), expected_size=content_length)
        return Response(status_code=201)

    async def get(self, request: Request, path: ConfinedPath) -> Response:
        info = await self.file_store.stat(path)
        if info.is_dir:
            logger.info("Directory listing forbidden!")
            raise Forbidden("Directory listing forbidden")

        headers = {"Content-Length": str(info.size)}
        content_type = content_type_for(path.relative)

        if request.method == "HEAD":
            return Response(headers=headers, media_type=content_type)

        return StreamingResponse(
            self.file_store.open_for_read(path),
            media_type=content_type,
            headers=headers,
        )
