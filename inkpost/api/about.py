from fastapi import APIRouter

from inkpost.schemas.content import AboutOut

router = APIRouter(tags=["About"])

ABOUT = AboutOut(
    title="About",
    body="Articles and column series, with comments open to every reader.",
)


@router.get("/about", response_model=AboutOut)
async def about() -> AboutOut:
    return ABOUT
