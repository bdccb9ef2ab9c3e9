from fastapi import APIRouter

router = APIRouter()
endpoints = [
    {
        "name": "Journees",
        "url": "/journees"
    },
    {
        "name": "Compositions",
        "url": "/compositions"
    },
    {
        "name": "Sync",
        "url": "/sync"
    }
]


@router.get("/", response_description="List all entry API endpoints")
async def get_root():
    return endpoints
