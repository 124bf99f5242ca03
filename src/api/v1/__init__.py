from fastapi import APIRouter
from src.api.v1.boards import router as boards_router
from src.api.v1.columns import router as columns_router
from src.api.v1.cards import router as cards_router, board_cards_router, cards_router as card_router
from src.api.v1.members import router as members_router
from src.api.v1.comments import router as comments_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include routers
api_router.include_router(boards_router)
api_router.include_router(columns_router)
api_router.include_router(cards_router)
api_router.include_router(board_cards_router)
api_router.include_router(card_router)
api_router.include_router(members_router)
api_router.include_router(comments_router)
