"""Custom model service for CRUD operations."""
from typing import List
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import desc

from database import store_call
from errors import NotFound
from models.custom_models import CustomModel
from schemas.catalog import CustomModelCreate, CustomModelUpdate
from services.threads import require_user


class CustomModelService:
    """Service class for a user's custom model entries."""

    @staticmethod
    def list_models(db: Session, user_id: str) -> List[CustomModel]:
        """Newest first."""
        require_user(user_id)
        with store_call(db, "load custom models"):
            return db.query(CustomModel).filter(
                CustomModel.user_id == user_id
            ).order_by(desc(CustomModel.created_at)).all()

    @staticmethod
    def create_model(db: Session, user_id: str, model_data: CustomModelCreate) -> CustomModel:
        require_user(user_id)
        db_model = CustomModel(
            user_id=user_id,
            name=model_data.name,
            model_id=model_data.model_id,
            provider=model_data.provider,
            description=model_data.description
        )

        with store_call(db, "add custom model"):
            db.add(db_model)
            db.commit()
            db.refresh(db_model)

        return db_model

    @staticmethod
    def update_model(db: Session, model_id: UUID, user_id: str, model_update: CustomModelUpdate) -> CustomModel:
        require_user(user_id)
        with store_call(db, "update custom model"):
            db_model = db.query(CustomModel).filter(
                CustomModel.id == model_id,
                CustomModel.user_id == user_id
            ).first()

            if not db_model:
                raise NotFound("Custom model not found")

            for field, value in model_update.model_dump(exclude_unset=True).items():
                if value is not None or field == "description":
                    setattr(db_model, field, value)

            db.commit()
            db.refresh(db_model)

        return db_model

    @staticmethod
    def delete_model(db: Session, model_id: UUID, user_id: str) -> bool:
        require_user(user_id)
        with store_call(db, "delete custom model"):
            db_model = db.query(CustomModel).filter(
                CustomModel.id == model_id,
                CustomModel.user_id == user_id
            ).first()

            if not db_model:
                return False

            db.delete(db_model)
            db.commit()

        return True
