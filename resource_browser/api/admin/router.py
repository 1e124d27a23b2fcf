from fastapi import APIRouter
from resource_browser.api.admin import resources

router = APIRouter()
router.include_router(resources.router, prefix="/resources", tags=["AdminResources"])
