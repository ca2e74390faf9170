from fastapi import Depends, HTTPException, status

from app.modules.auth.deps import RequireAuthenticated, UserContext
from app.modules.families.models import ROLE_CHILD, ROLE_PARENT


def IsParent(user: UserContext) -> bool:
    return user.Role == ROLE_PARENT and user.FamilyId is not None


def IsChild(user: UserContext) -> bool:
    return user.Role == ROLE_CHILD and user.FamilyId is not None


def RequireFamilyMember():
    def _checker(user: UserContext = Depends(RequireAuthenticated)) -> UserContext:
        if not IsParent(user) and not IsChild(user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return _checker


def RequirePointsChild():
    def _checker(user: UserContext = Depends(RequireAuthenticated)) -> UserContext:
        if not IsChild(user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return _checker


def RequirePointsParent():
    def _checker(user: UserContext = Depends(RequireAuthenticated)) -> UserContext:
        if not IsParent(user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return _checker
