"""
文件上传路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from gouraan.config import settings
from gouraan.database import get_db
from gouraan.exceptions import BusinessRuleError
from gouraan.models.entities import User
from gouraan.models.schemas import UploadedFileResponse
from gouraan.services.file_service import FileService
from gouraan.security.auth import get_current_user

router = APIRouter(prefix="/files", tags=["文件"])

UPLOAD_CHUNK_SIZE = 64 * 1024


async def read_upload(file: UploadFile, limit: int) -> bytes:
    """分块读取上传内容，超过上限立即拒绝"""
    chunks, size = [], 0
    while chunk := await file.read(UPLOAD_CHUNK_SIZE):
        size += len(chunk)
        if size > limit:
            raise BusinessRuleError(f"文件大小超过限制 ({limit} bytes)")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=UploadedFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    payment_id: Optional[int] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """上传文件（可关联支付作为凭证）"""
    content = await read_upload(file, settings.MAX_UPLOAD_SIZE)
    return FileService(db).save_upload(
        current_user, file.filename, file.content_type, content, payment_id
    )


@router.get("/{file_id}", response_model=UploadedFileResponse)
def get_file_info(
    file_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FileService(db).get_file(file_id, current_user)


@router.get("/{file_id}/download")
def download_file(
    file_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    record = FileService(db).get_file(file_id, current_user)
    return FileResponse(record.path, media_type=record.content_type, filename=record.original_name)


@router.delete("/{file_id}")
def delete_file(
    file_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    FileService(db).delete_file(file_id, current_user)
    return {"message": "文件已删除"}
