from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional
from slotwise import config
from slotwise.exceptions import ForbiddenException, NotFoundException
from slotwise.models.service_model import Service
from slotwise.models.user_model import User
from slotwise.schemas.service_schema import ServiceCreate, ServiceUpdate
from slotwise.schemas.user_schema import Role
from slotwise.logger import get_logger

logger = get_logger(__name__)


class ServiceCRUD:
    @staticmethod
    def create_service(db: Session, service: ServiceCreate, provider: User) -> Service:
        """Create a new service owned by the provider"""
        if config.DEFAULT_SERVICE_LIMIT > 0:
            active_count = (
                db.query(Service)
                .filter(Service.provider_id == provider.id, Service.is_active == True)  # noqa: E712
                .count()
            )
            if active_count >= config.DEFAULT_SERVICE_LIMIT:
                raise ForbiddenException(
                    f"You have reached your service limit of {config.DEFAULT_SERVICE_LIMIT}",
                    code="SERVICE_LIMIT_REACHED",
                )

        try:
            db_service = Service(
                title=service.title,
                description=service.description,
                category=service.category.value,
                base_price=service.base_price,
                duration_minutes=service.duration_minutes,
                provider_id=provider.id,
            )
            db.add(db_service)
            db.commit()
            db.refresh(db_service)
            logger.info(f"Service created: {service.title} by provider {provider.id}")
            return db_service

        except Exception as e:
            db.rollback()
            logger.error(f"Error creating service: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while creating service"
            )

    @staticmethod
    def get_service_by_id(db: Session, service_id: str) -> Optional[Service]:
        """Get service by ID"""
        return db.query(Service).filter(Service.id == str(service_id)).first()

    @staticmethod
    def get_services(
            db: Session,
            skip: int = 0,
            limit: int = 100,
            q: Optional[str] = None,
            category: Optional[str] = None,
            provider_id: Optional[str] = None,
            active: Optional[bool] = True,
    ) -> List[Service]:
        """Get services with optional filtering, newest first"""
        query = db.query(Service)

        # Filter by search query (title or description)
        if q:
            query = query.filter(
                or_(
                    Service.title.ilike(f"%{q}%"),
                    Service.description.ilike(f"%{q}%")
                )
            )

        if category:
            query = query.filter(Service.category == getattr(category, "value", category))

        if provider_id:
            query = query.filter(Service.provider_id == provider_id)

        if active is not None:
            query = query.filter(Service.is_active == active)

        return query.order_by(Service.created_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def _get_owned_service(db: Session, service_id: str, user: User, action: str) -> Service:
        db_service = db.query(Service).filter(Service.id == str(service_id)).first()
        if not db_service:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")

        if user.role != Role.admin.value and db_service.provider_id != user.id:
            raise ForbiddenException(f"Not authorized to {action} this service")
        return db_service

    @staticmethod
    def update_service(db: Session, service_id: str, service_update: ServiceUpdate, user: User) -> Service:
        """Update service by ID.

        Changing duration_minutes affects future bookings only; existing
        bookings keep the interval they were created with.
        """
        db_service = ServiceCRUD._get_owned_service(db, service_id, user, "update")

        try:
            # Update only provided fields
            for key, value in service_update.model_dump(exclude_unset=True).items():
                if value is not None:
                    setattr(db_service, key, getattr(value, "value", value))

            db.commit()
            db.refresh(db_service)
            logger.info(f"Service updated: {service_id}")
            return db_service

        except Exception as e:
            db.rollback()
            logger.error(f"Error updating service {service_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while updating service"
            )

    @staticmethod
    def deactivate_service(db: Session, service_id: str, user: User) -> Service:
        # Soft delete: bookings keep referencing the row
        db_service = ServiceCRUD._get_owned_service(db, service_id, user, "delete")

        try:
            db_service.is_active = False
            db.commit()
            db.refresh(db_service)
            logger.info(f"Service deactivated: {service_id}")
            return db_service

        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting service {service_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while deleting service"
            )


service_crud = ServiceCRUD()
