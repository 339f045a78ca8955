"""
文件上传服务 - 付款凭证、证件等
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Optional
from sqlalchemy.orm import Session

from gouraan.config import settings
from gouraan.exceptions import BusinessRuleError, NotFoundError, PermissionDeniedError
from gouraan.models.entities import UploadedFile, Payment, User, UserRole
from gouraan.repositories import BaseRepository
from gouraan.security.permissions import is_staff

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}


class FileService:
    """文件存储"""

    def __init__(self, db: Session, upload_dir: Optional[str] = None):
        self.db = db
        self.repo = BaseRepository(db, UploadedFile)
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)

    def save_upload(self, user: User, filename: str, content_type: str, content: bytes,
                    payment_id: Optional[int] = None) -> UploadedFile:
        if content_type not in settings.ALLOWED_UPLOAD_TYPES:
            raise BusinessRuleError(f"不支持的文件类型: {content_type}")
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise BusinessRuleError(f"文件大小超过限制 ({settings.MAX_UPLOAD_SIZE} bytes)")
        if not content:
            raise BusinessRuleError("文件为空")

        if payment_id is not None:
            payment = self.db.query(Payment).filter(Payment.id == payment_id).first()
            if not payment or (payment.user_id != user.id and not is_staff(user)):
                raise NotFoundError("支付记录不存在")

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        ext = EXTENSIONS.get(content_type) or Path(filename or "").suffix
        stored_name = f"{uuid.uuid4().hex}{ext}"
        path = self.upload_dir / stored_name
        with open(path, "wb") as buffer:
            buffer.write(content)

        record = UploadedFile(
            original_name=os.path.basename(filename or stored_name),
            stored_name=stored_name,
            content_type=content_type,
            size=len(content),
            path=str(path),
            uploaded_by_id=user.id,
            payment_id=payment_id,
        )
        self.repo.create(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"File uploaded: {record.id} ({content_type}, {record.size} bytes) by {user.id}")
        return record

    def get_file(self, file_id: int, user: User) -> UploadedFile:
        """上传者或员工可访问"""
        record = self.repo.get_by_id(file_id)
        if not record or (record.uploaded_by_id != user.id and not is_staff(user)):
            raise NotFoundError("文件不存在")
        return record

    def delete_file(self, file_id: int, user: User) -> None:
        record = self.get_file(file_id, user)
        if record.uploaded_by_id != user.id and user.role != UserRole.ADMIN:
            raise PermissionDeniedError("只有上传者或管理员可以删除文件")
        path = Path(record.path)
        if path.exists():
            path.unlink()
        self.repo.delete(record)
        self.db.commit()
        logger.info(f"File deleted: {file_id}")
