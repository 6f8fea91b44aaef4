from .functions import router as functions_router
from .groups import router as groups_router
from .health import router as health_router
from .personal import router as personal_router
