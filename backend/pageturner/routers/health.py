from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "cached_pages": len(request.app.state.cache),
        "background_tasks": len(request.app.state.tasks),
    }
