import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from upload_server import __version__
from upload_server.config import Config
from upload_server.logger_config import LOGGER_NAME, setup_logger
from upload_server.services.file_store import FileStore
from upload_server.services.mac_verifier import MacVerifier
from upload_server.services.path_resolver import PathResolver
from upload_server.services.upload_handler import ALLOWED_METHODS, UploadRequestHandler

logger = logging.getLogger(LOGGER_NAME)

# Every verb is routed to the handler, which answers 405 itself
ROUTED_METHODS = ["OPTIONS", "HEAD", "GET", "PUT", "POST", "DELETE", "PATCH"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ALLOWED_METHODS,
    "Access-Control-Allow-Headers": "Authorization, Content-Type",
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Max-Age": "7200",
}


def create_app(conf: Config) -> FastAPI:
    """Build the upload server application for the given configuration."""
    path_resolver = PathResolver(conf.store_dir, conf.upload_subdir)
    file_store = FileStore(conf.store_dir)
    handler = UploadRequestHandler(path_resolver, MacVerifier(conf.secret), file_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await file_store.initialize()
        yield

    app = FastAPI(title="XMPP HTTP Upload Server", version=__version__, lifespan=lifespan)
    app.state.config = conf
    app.state.upload_handler = handler

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def plain_text_error(request: Request, exc: StarletteHTTPException):
        logger.info(f"{request.method} {request.scope['path']} failed: {exc.status_code} {exc.detail}")
        phrase = HTTPStatus(exc.status_code).phrase
        headers = dict(getattr(exc, "headers", None) or {})
        if exc.status_code == 405:
            # The router answers 405 for unrouted verbs with its own method list
            headers["Allow"] = ALLOWED_METHODS
        return PlainTextResponse(f"{exc.status_code} {phrase}", status_code=exc.status_code, headers=headers)

    async def handle_upload_request(request: Request):
        return await request.app.state.upload_handler.handle(request)

    app.add_api_route(
        f"{path_resolver.prefix}/{{file_path:path}}",
        handle_upload_request,
        methods=ROUTED_METHODS,
        include_in_schema=False,
    )

    return app


def main(argv=None):
    conf = Config.from_args(argv)
    setup_logger(conf.log_level)

    logger.info(f"Starting upload server {__version__} ...")
    logger.info(f"Store directory: {conf.store_dir}")
    logger.info(f"Upload path: /{conf.upload_subdir}")

    app = create_app(conf)
    if conf.unix_socket:
        logger.info(f"Listening on unix socket {conf.unix_socket}")
        uvicorn.run(app, uds=conf.unix_socket, log_level=conf.log_level.lower())
    else:
        logger.info(f"Listening on {conf.listen_host}:{conf.listen_port}")
        uvicorn.run(app, host=conf.listen_host, port=conf.listen_port, log_level=conf.log_level.lower())


if __name__ == "__main__":
    main()
