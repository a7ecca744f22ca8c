from gardengear.workshop.users.api import router
from gardengear.workshop.users.models import StaffUser
from gardengear.workshop.users.schemas import StaffUserCreate, StaffUserRead
from gardengear.workshop.users.service import StaffUserService, staff_user_service

__all__ = [
    "router",
    "StaffUser",
    "StaffUserCreate",
    "StaffUserRead",
    "StaffUserService",
    "staff_user_service",
]
