from __future__ import annotations

import asyncio
import functools
from urllib.parse import quote

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.requests import Request
from fastapi.responses import Response

from bastion.shared.gate import GateLogger
from bastion.shared.errors import GatewayError, InternalError
from gatehouse.middleware.security import client_id

_log = GateLogger.get("FilesAPI")


def content_disposition(filename: str) -> str:
    """Attachment header, RFC 5987 encoded when the name is not plain ASCII."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


async def _call(func, *args, **kwargs):
    """Run a blocking gateway call off the event loop, mapping gateway errors."""
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
    except InternalError as e:
        _log.error(f"{e.message}: {e.detail}")
        raise HTTPException(status_code=500, detail="Internal server error")
    except GatewayError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


def create_router(gateway) -> APIRouter:
    """
    Build the file API router.

    Throttling happens in SecurityMiddleware, so gateway calls made here skip
    the gateway's own rate check.
    """
    router = APIRouter()

    @router.get("/api/files")
    async def api_list_files(request: Request, path: str | None = None):
        """List a directory, defaulting to the root."""
        result = await _call(
            gateway.list_directory, client_id(request), path, enforce_rate_limit=False
        )
        return {"success": True, **result.to_dict()}

    @router.get("/api/files/defaultpath")
    async def api_default_path():
        """The configured root directory."""
        return {"success": True, "default_path": gateway.default_path()}

    @router.get("/api/files/search")
    async def api_search_files(
        request: Request,
        search_term: str | None = None,
        path: str | None = None,
        include_subdirectories: bool = True,
        max_results: int | None = None,
    ):
        """Search names below a directory."""
        result = await _call(
            gateway.search,
            client_id(request),
            path,
            search_term,
            include_subdirectories,
            max_results,
            enforce_rate_limit=False,
        )
        return {"success": True, **result.to_dict()}

    @router.get("/api/files/download")
    async def api_download_file(request: Request, path: str | None = None):
        """Return a file as an attachment."""
        content, filename = await _call(
            gateway.download, client_id(request), path, enforce_rate_limit=False
        )
        return Response(
            content=content,
            media_type="application/octet-stream",
            headers={"Content-Disposition": content_disposition(filename)},
        )

    @router.post("/api/files/upload")
    async def api_upload_file(
        request: Request,
        path: str | None = None,
        file: UploadFile | None = File(None),
    ):
        """Store an uploaded file in a directory."""
        file_name = None
        content_type = None
        content = b""
        if file is not None:
            file_name = file.filename
            content_type = file.content_type
            # One byte past the cap is enough for the size check to reject it
            content = await file.read(gateway.config.max_file_size + 1)
            await file.close()

        accepted = await _call(
            gateway.upload,
            client_id(request),
            path,
            file_name,
            content_type,
            content,
            enforce_rate_limit=False,
        )
        return {
            "success": True,
            "message": "File uploaded successfully",
            "file_name": accepted.sanitized_file_name,
            "size": accepted.size_bytes,
        }

    @router.post("/api/files/copy")
    async def api_copy_file(
        request: Request,
        source_path: str | None = None,
        destination_path: str | None = None,
    ):
        """Copy a file."""
        destination = await _call(
            gateway.copy,
            client_id(request),
            source_path,
            destination_path,
            enforce_rate_limit=False,
        )
        return {
            "success": True,
            "message": "File copied successfully",
            "destination_path": str(destination),
        }

    @router.post("/api/files/move")
    async def api_move_file(
        request: Request,
        source_path: str | None = None,
        destination_path: str | None = None,
    ):
        """Move a file."""
        destination = await _call(
            gateway.move,
            client_id(request),
            source_path,
            destination_path,
            enforce_rate_limit=False,
        )
        return {
            "success": True,
            "message": "File moved successfully",
            "destination_path": str(destination),
        }

    return router


__all__ = ["create_router", "content_disposition"]
