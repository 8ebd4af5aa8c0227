from .admin_live_class import router as admin_live_class_router
from .live_class import router as live_class_router
from .live_class_access import router as live_class_access_router

routes = [
    live_class_access_router,
    live_class_router,
    admin_live_class_router,
]
