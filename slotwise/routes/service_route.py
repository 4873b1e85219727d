from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from slotwise.services.service_crud import service_crud
from slotwise.schemas.service_schema import ServiceCategory, ServiceCreate, ServiceUpdate, ServiceResponse
from slotwise.database import get_db
from slotwise.exceptions import DomainException
from slotwise.security.auth import get_current_provider_user
from slotwise.models.user_model import User
from slotwise.logger import get_logger

service_router = APIRouter()
logger = get_logger(__name__)

# PUBLIC ENDPOINTS - Anyone can browse services


@service_router.get(
    "/services", response_model=List[ServiceResponse], status_code=status.HTTP_200_OK
)
def get_services(
    skip: int = Query(0, ge=0, description="Number of services to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of services to retrieve"),
    q: Optional[str] = Query(None, description="Search query for title or description"),
    category: Optional[ServiceCategory] = Query(None, description="Filter by category"),
    provider_id: Optional[str] = Query(None, description="Filter by provider"),
    db: Session = Depends(get_db),
):
    """Get all active services with optional filtering (public endpoint)"""
    try:
        logger.info(f"Fetching services: skip={skip}, limit={limit}, q={q}, category={category}")
        services = service_crud.get_services(
            db=db, skip=skip, limit=limit, q=q, category=category, provider_id=provider_id
        )
        return [ServiceResponse.model_validate(service) for service in services]

    except Exception as e:
        logger.error(f"Error fetching services: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching services",
        )


@service_router.get(
    "/services/{service_id}",
    response_model=ServiceResponse,
    status_code=status.HTTP_200_OK,
)
def get_service(service_id: str, db: Session = Depends(get_db)):
    """Get service by ID (public endpoint)"""
    try:
        service = service_crud.get_service_by_id(db, service_id)
        # Only return active services for public endpoint
        if not service or not service.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Service not found"
            )

        return ServiceResponse.model_validate(service)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching service {service_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching service",
        )


# PROVIDER ENDPOINTS - Service management


@service_router.post(
    "/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED
)
def create_service(
    service: ServiceCreate,
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    """Create a new service (providers only)"""
    try:
        logger.info(f"Provider {current_user.id} creating service: {service.title}")
        db_service = service_crud.create_service(db, service, current_user)
        return ServiceResponse.model_validate(db_service)

    except HTTPException:
        raise
    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error creating service: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while creating service",
        )


@service_router.patch(
    "/services/{service_id}",
    response_model=ServiceResponse,
    status_code=status.HTTP_200_OK,
)
def update_service(
    service_id: str,
    service_update: ServiceUpdate,
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    """Update a service (owner or admin)"""
    try:
        logger.info(f"User {current_user.id} updating service: {service_id}")
        updated_service = service_crud.update_service(db, service_id, service_update, current_user)
        return ServiceResponse.model_validate(updated_service)

    except HTTPException:
        raise
    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error updating service {service_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while updating service",
        )


@service_router.delete(
    "/services/{service_id}",
    response_model=ServiceResponse,
    status_code=status.HTTP_200_OK,
)
def delete_service(
    service_id: str,
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    """Deactivate a service (owner or admin)"""
    try:
        logger.info(f"User {current_user.id} deactivating service: {service_id}")
        service = service_crud.deactivate_service(db, service_id, current_user)
        return ServiceResponse.model_validate(service)

    except HTTPException:
        raise
    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error deleting service {service_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while deleting service",
        )
