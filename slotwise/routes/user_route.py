from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from slotwise.database import get_db
from slotwise.exceptions import DomainException
from slotwise.models.user_model import User
from slotwise.schemas.user_schema import (
    PaymentDetailsOut,
    PaymentDetailsUpdate,
    RoleUpdate,
    UserOut,
    UserUpdate,
    WorkingHoursUpdate,
    WorkingWindowOut,
)
from slotwise.security.auth import get_current_user, get_current_admin_user
from slotwise.services.user_crud import user_crud
from slotwise.logger import get_logger

user_router = APIRouter()
logger = get_logger(__name__)


@user_router.get("/users/me", response_model=UserOut, status_code=status.HTTP_200_OK)
def get_me(current_user: User = Depends(get_current_user)):
    return UserOut.model_validate(current_user)


@user_router.patch("/users/me", response_model=UserOut, status_code=status.HTTP_200_OK)
def update_me(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = user_crud.update_user(db, current_user, user_update)
        return UserOut.model_validate(user)

    except Exception as e:
        db.rollback()
        logger.error(f"Error updating profile of {current_user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while updating profile",
        )


@user_router.put(
    "/users/me/payment-details", response_model=PaymentDetailsOut, status_code=status.HTTP_200_OK
)
def update_payment_details(
    details: PaymentDetailsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Set the QR code URL and notes customers see when paying (providers and admins)"""
    try:
        user = user_crud.update_payment_details(db, current_user, details)
        return PaymentDetailsOut.model_validate(user)

    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating payment details of {current_user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while updating payment details",
        )


@user_router.delete(
    "/users/me/payment-qr-code", response_model=PaymentDetailsOut, status_code=status.HTTP_200_OK
)
def delete_payment_qr_code(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = user_crud.clear_payment_qr_code(db, current_user)
        return PaymentDetailsOut.model_validate(user)

    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        db.rollback()
        logger.error(f"Error removing payment QR code of {current_user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while removing payment QR code",
        )


@user_router.get(
    "/providers/{provider_id}/working-hours",
    response_model=List[WorkingWindowOut],
    status_code=status.HTTP_200_OK,
)
def get_working_hours(provider_id: str, db: Session = Depends(get_db)):
    """Configured weekly hours; an empty list means the default business hours apply"""
    windows = user_crud.get_working_windows(db, provider_id)
    return [WorkingWindowOut.model_validate(window) for window in windows]


@user_router.put(
    "/users/me/working-hours",
    response_model=List[WorkingWindowOut],
    status_code=status.HTTP_200_OK,
)
def replace_working_hours(
    hours: WorkingHoursUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        windows = user_crud.replace_working_windows(db, current_user, hours.windows)
        return [WorkingWindowOut.model_validate(window) for window in windows]

    except HTTPException:
        raise
    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error saving working hours of {current_user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while saving working hours",
        )


# ADMIN ENDPOINTS


@user_router.patch(
    "/admin/users/{user_id}/role", response_model=UserOut, status_code=status.HTTP_200_OK
)
def update_user_role(
    user_id: str,
    role_update: RoleUpdate,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    try:
        logger.info(f"Admin {current_user.id} setting role of {user_id} to {role_update.role.value}")
        user = user_crud.update_role(db, user_id, role_update.role)
        return UserOut.model_validate(user)

    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating role of {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while updating user role",
        )
