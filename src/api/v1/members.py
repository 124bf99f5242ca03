from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_activity_log, get_current_user, get_team_directory
from src.api.dependencies.permissions import check_board_access
from src.models.activity import ActivityType
from src.schemas.auth import CurrentUser
from src.schemas.member import AddMemberRequest, ChangeMemberRoleRequest, MemberResponse
from src.services import access_service
from src.services.activity_service import ActivityLog
from src.services.member_service import MemberService
from src.services.team_service import TeamDirectory

router = APIRouter(
    prefix="/boards/{board_id}/members",
    tags=["board members"],
)


@router.get("", response_model=List[MemberResponse])
async def get_members(
    board_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
):
    """Get the explicit members of a board"""
    await check_board_access(db, board_id, current_user.id, teams)
    return await MemberService.get_members(db, board_id)


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    board_id: int,
    request: AddMemberRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Add a user to the board (only owner can add users)"""
    board, _ = await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_manage_members,
        "Only the board owner can add members"
    )

    member = await MemberService.add_member(db, board, request.user_id, request.role)

    await activity.append(
        board_id,
        ActivityType.MEMBER_ADDED,
        user_id=current_user.id,
        details={"user_id": request.user_id, "role": request.role.value}
    )
    return member


@router.put("/{user_id}", response_model=MemberResponse)
async def change_member_role(
    board_id: int,
    user_id: str,
    request: ChangeMemberRoleRequest,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Change a member's role (only owner can change roles)"""
    board, _ = await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_manage_members,
        "Only the board owner can change member roles"
    )

    member = await MemberService.change_role(db, board, user_id, request.role)

    await activity.append(
        board_id,
        ActivityType.MEMBER_ROLE_CHANGED,
        user_id=current_user.id,
        details={"user_id": user_id, "role": request.role.value}
    )
    return member


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    board_id: int,
    user_id: str,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    teams: TeamDirectory = Depends(get_team_directory),
    activity: ActivityLog = Depends(get_activity_log),
):
    """Remove a member from the board (only owner can remove users)"""
    board, _ = await check_board_access(
        db, board_id, current_user.id, teams, access_service.can_manage_members,
        "Only the board owner can remove members"
    )

    await MemberService.remove_member(db, board, user_id)

    await activity.append(
        board_id,
        ActivityType.MEMBER_REMOVED,
        user_id=current_user.id,
        details={"user_id": user_id}
    )
    return None
