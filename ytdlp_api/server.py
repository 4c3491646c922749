"""
Defines the aiohttp application: routes, handlers and middlewares.

Handlers are thin: they validate input, call into the download core and
serialize the result. Post-admission failures never surface here; they are
only visible through `GET /status`.
"""
import asyncio
import os
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from aiohttp import web
from pydantic import ValidationError

from .config import ConfigManager, Settings
from .downloads import DownloadManager
from .exceptions import DuplicateInFlightError, URLExtractionError
from .files import list_downloaded_files, resolve_download
from .jobs import JobRequest
from .registry import JobRegistry
from .url_extractor import FormatExtractor

logger = logging.getLogger(__name__)


def error_response(status: int, message: str) -> web.Response:
    return web.json_response({'error': message}, status=status)


def _validation_message(error: ValidationError) -> str:
    details = error.errors()[0]
    field = '.'.join(str(part) for part in details['loc']) or 'body'
    return f"Error in field '{field}': {details['msg']}"


class AppController:
    """Holds the shared server state and implements the HTTP handlers."""

    def __init__(self, config_manager: ConfigManager, config: Settings, command_prefix: Sequence[str]):
        """
        Initializes the AppController.

        Args:
            config_manager: The manager for handling configuration persistence.
            config: The loaded settings.
            command_prefix: The command used to invoke yt-dlp.
        """
        self.config_manager = config_manager
        self.config = config
        self.registry = JobRegistry()
        self.download_manager = DownloadManager(self.registry, command_prefix)
        self.format_extractor = FormatExtractor(command_prefix)

    @property
    def download_dir(self) -> Path:
        return Path(self.config.download_directory)

    # --- Config ---

    async def get_config(self, request: web.Request) -> web.Response:
        return web.json_response(self.config.model_dump())

    async def update_config(self, request: web.Request) -> web.Response:
        try:
            new_settings = Settings.model_validate(await request.json())
        except json.JSONDecodeError:
            return error_response(400, "Request body must be valid JSON.")
        except ValidationError as e:
            return error_response(400, _validation_message(e))
        await self.config_manager.save_async(new_settings)
        self.config = new_settings
        return web.json_response(new_settings.model_dump())

    # --- Formats ---

    async def list_formats(self, request: web.Request) -> web.Response:
        url = request.query.get('url', '')
        if not url:
            return error_response(400, "URL parameter cannot be empty")
        try:
            info = await self.format_extractor.get_video_info(url)
        except URLExtractionError as e:
            return error_response(400, f"yt-dlp error: {e}")
        return web.json_response(info.model_dump())

    # --- Downloads ---

    async def start_download(self, request: web.Request) -> web.Response:
        try:
            payload = JobRequest.model_validate(await request.json())
        except json.JSONDecodeError:
            return error_response(400, "Request body must be valid JSON.")
        except ValidationError as e:
            return error_response(400, _validation_message(e))

        try:
            key = await self.download_manager.submit(payload, self.config.download_directory)
        except DuplicateInFlightError:
            return error_response(400, "A download for this URL is already in progress.")

        return web.json_response(
            {'message': "Download started successfully", 'download_key': key},
            status=202,
        )

    async def get_status(self, request: web.Request) -> web.Response:
        snapshot = await self.registry.snapshot()
        return web.json_response({key: record.to_dict() for key, record in snapshot.items()})

    # --- Files ---

    async def list_files(self, request: web.Request) -> web.Response:
        files = await asyncio.to_thread(list_downloaded_files, self.download_dir)
        return web.json_response(files)

    async def get_file(self, request: web.Request) -> web.StreamResponse:
        relative_path = request.match_info['path']
        file_path = await asyncio.to_thread(resolve_download, self.download_dir, relative_path)
        if file_path is None:
            return error_response(404, f"File '{relative_path}' not found.")
        return web.FileResponse(
            file_path,
            headers={'Content-Disposition': f'attachment; filename="{file_path.name}"'},
        )

    async def on_shutdown(self, app: web.Application):
        """Stops running downloads so no yt-dlp process outlives the server."""
        await self.download_manager.stop_all_downloads()


CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': '*',
    'Access-Control-Allow-Headers': '*',
}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    """Allows any origin; answers preflight requests directly."""
    if request.method == 'OPTIONS':
        return web.Response(status=204, headers=CORS_HEADERS)
    response = await handler(request)
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Turns HTTP errors and unexpected exceptions into JSON error bodies."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return error_response(e.status, e.reason)
    except Exception:
        logger.exception(f"Internal server error handling {request.method} {request.path}")
        return error_response(500, "An internal server error occurred")


def create_app(controller: AppController) -> web.Application:
    """Builds the aiohttp application around a controller."""
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app.router.add_get('/formats', controller.list_formats)
    app.router.add_post('/download', controller.start_download)
    app.router.add_get('/status', controller.get_status)
    app.router.add_get('/files', controller.list_files)
    app.router.add_get('/files/{path:.+}', controller.get_file)
    app.router.add_get('/config', controller.get_config)
    app.router.add_post('/config', controller.update_config)
    app.on_shutdown.append(controller.on_shutdown)
    return app


def run_server(config_manager: ConfigManager, config: Settings, command_prefix: Sequence[str],
               host: Optional[str] = None, port: Optional[int] = None, on_startup=None):
    """
    Runs the server in the foreground until interrupted.

    `HOST` and `PORT` environment variables override the configured address.
    """
    host = host or os.environ.get('HOST') or config.host
    port = port or int(os.environ.get('PORT') or config.port)
    controller = AppController(config_manager, config, command_prefix)
    app = create_app(controller)
    if on_startup is not None:
        app.on_startup.append(on_startup)
    logger.info(f"Starting server in foreground, listening on {host}:{port}")
    web.run_app(app, host=host, port=port, print=None)
