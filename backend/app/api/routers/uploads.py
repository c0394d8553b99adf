from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from app.schemas import UploadRequest

router = APIRouter(tags=["uploads"])


@router.post("/", include_in_schema=False)
@router.post("/upload", name="upload_file")
async def upload_file(request: Request) -> PlainTextResponse:
    upload_service = request.app.state.upload_service
    data = await request.body()
    upload_request = UploadRequest(
        headers=dict(request.headers),
        body=data or None,
        is_base64_encoded=False,
    )
    result = await upload_service.handle(upload_request)
    return PlainTextResponse(result.body, status_code=result.status_code, headers=result.headers)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
