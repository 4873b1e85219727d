from fastapi import HTTPException, status
from typing import List, Optional
from slotwise.exceptions import ForbiddenException, NotFoundException, ValidationException
from slotwise.models.user_model import User
from slotwise.models.working_window_model import WorkingWindow
from slotwise.schemas.user_schema import PaymentDetailsUpdate, Role, UserUpdate, WorkingWindowIn
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from slotwise.logger import get_logger

logger = get_logger(__name__)

PAYMENT_MANAGER_ROLES = (Role.provider.value, Role.admin.value)


class UserCRUD:
    @staticmethod
    def get_user_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == str(user_id)).first()

    @staticmethod
    def get_or_provision(
            db: Session,
            user_id: str,
            role: Optional[str] = None,
            name: Optional[str] = None,
            email: Optional[str] = None,
    ) -> User:
        """Return the local record for an identity-provider subject, creating it on first sight"""
        user = UserCRUD.get_user_id(db, user_id)
        if user:
            return user

        try:
            role_value = Role(role).value if role else Role.customer.value
        except ValueError:
            role_value = Role.customer.value

        db_user = User(id=user_id, role=role_value, name=name, email=email, is_active=True)
        db.add(db_user)
        try:
            db.commit()
        except IntegrityError:
            # Another request provisioned the same subject first
            db.rollback()
            return UserCRUD.get_user_id(db, user_id)
        db.refresh(db_user)
        logger.info(f"Provisioned user {user_id} with role {role_value}")
        return db_user

    @staticmethod
    def update_user(db: Session, user: User, user_update: UserUpdate) -> User:
        for key, value in user_update.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(user, key, value)

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_payment_details(db: Session, user: User, details: PaymentDetailsUpdate) -> User:
        if user.role not in PAYMENT_MANAGER_ROLES:
            raise ForbiddenException("Only providers and admins can update payment details")

        user.payment_qr_code = str(details.payment_qr_code) if details.payment_qr_code else None
        user.payment_notes = details.payment_notes
        db.commit()
        db.refresh(user)
        logger.info(f"Payment details updated for user {user.id}")
        return user

    @staticmethod
    def clear_payment_qr_code(db: Session, user: User) -> User:
        if user.role not in PAYMENT_MANAGER_ROLES:
            raise ForbiddenException("Only providers and admins can manage payment details")

        user.payment_qr_code = None
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_role(db: Session, user_id: str, role: Role) -> User:
        db_user = UserCRUD.get_user_id(db, user_id)
        if not db_user:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")

        db_user.role = role.value
        db.commit()
        db.refresh(db_user)
        logger.info(f"Role of user {user_id} set to {role.value}")
        return db_user

    @staticmethod
    def get_working_windows(db: Session, provider_id: str) -> List[WorkingWindow]:
        return (
            db.query(WorkingWindow)
            .filter(WorkingWindow.provider_id == provider_id)
            .order_by(WorkingWindow.weekday)
            .all()
        )

    @staticmethod
    def replace_working_windows(db: Session, user: User, windows: List[WorkingWindowIn]) -> List[WorkingWindow]:
        """Replace the provider's weekly hours. An empty list reverts to the default business hours."""
        if user.role not in PAYMENT_MANAGER_ROLES:
            raise ForbiddenException("Only providers can configure working hours")

        weekdays = [window.weekday for window in windows]
        if len(weekdays) != len(set(weekdays)):
            raise ValidationException("Each weekday may have only one working window", code="DUPLICATE_WEEKDAY")
        for window in windows:
            if window.end_minute <= window.start_minute:
                raise ValidationException(
                    "end_minute must be after start_minute",
                    code="INVALID_WINDOW",
                    details={"weekday": window.weekday},
                )

        try:
            db.query(WorkingWindow).filter(WorkingWindow.provider_id == user.id).delete()
            for window in windows:
                db.add(
                    WorkingWindow(
                        provider_id=user.id,
                        weekday=window.weekday,
                        start_minute=window.start_minute,
                        end_minute=window.end_minute,
                    )
                )
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Error saving working hours for {user.id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while saving working hours",
            )
        logger.info(f"Working hours replaced for provider {user.id}: {len(windows)} windows")
        return UserCRUD.get_working_windows(db, user.id)


user_crud = UserCRUD()
