"""
Advertising Scripts - public endpoint used by the storefront layout
"""
from fastapi import APIRouter, Depends

from purvita.dependencies import get_advertising_repository
from purvita.repositories import AdvertisingScriptRepository

router = APIRouter()


@router.get("/active")
async def get_active_scripts(repo: AdvertisingScriptRepository = Depends(get_advertising_repository)):
    scripts = repo.list_active()
    return {
        "status": "success",
        "count": len(scripts),
        "data": [script.model_dump(mode="json") for script in scripts]
    }
