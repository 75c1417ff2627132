# meeting_metrics/api/routes/members.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.db.session import get_db
from meeting_metrics.models.member import Member
from meeting_metrics.schemas.member import MemberCreate, MemberRead, MemberStatus

router = APIRouter(prefix="/members", tags=["Members"])


@router.post(
    "",
    response_model=MemberRead,
    status_code=HTTPStatus.CREATED,
    summary="Register a member",
    description=(
        "Add a member to the directory so attendance, tasks and performance "
        "can be tracked for them. E-mail addresses must be unique."
    ),
    responses={
        400: {
            "description": "A member with the same e-mail already exists.",
            "content": {
                "application/json": {
                    "example": {"detail": "Member with email 'asha@example.org' already exists."}
                }
            },
        },
    },
)
async def create_member(
    payload: MemberCreate,
    db: AsyncSession = Depends(get_db),
) -> MemberRead:
    existing = await db.execute(select(Member).where(Member.email == payload.email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Member with email '{payload.email}' already exists.",
        )

    member = Member(
        name=payload.name,
        email=payload.email,
        role=payload.role.value,
        status=payload.status.value,
    )
    db.add(member)
    await db.commit()
    await db.refresh(member)

    return MemberRead.model_validate(member)


@router.get(
    "",
    response_model=list[MemberRead],
    summary="List members",
    description="Return all members in registration order, optionally filtered by status.",
)
async def list_members(
    status: MemberStatus | None = Query(
        default=None,
        description="If given, only members with this status are returned.",
        examples=["active"],
    ),
    db: AsyncSession = Depends(get_db),
) -> list[MemberRead]:
    stmt = select(Member)
    if status is not None:
        stmt = stmt.where(Member.status == status.value)

    result = await db.execute(stmt.order_by(Member.id.asc()))
    return [MemberRead.model_validate(m) for m in result.scalars().all()]


@router.get(
    "/{member_id}",
    response_model=MemberRead,
    summary="Get a member by ID",
    responses={404: {"description": "No member exists with the given ID."}},
)
async def get_member(
    member_id: int = Path(..., ge=1, description="Numeric ID of the member.", examples=[7]),
    db: AsyncSession = Depends(get_db),
) -> MemberRead:
    result = await db.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Member with id {member_id} not found.",
        )
    return MemberRead.model_validate(member)
