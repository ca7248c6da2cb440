from exam_scheduler.schemas.common.base import BaseSchema, BaseResponseSchema

__all__ = ["BaseSchema", "BaseResponseSchema"]
