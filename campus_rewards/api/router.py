from fastapi import APIRouter

from campus_rewards.api import activities, admin, auth, events, leaderboard, notifications, rewards, transactions, users

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(activities.router)
api_router.include_router(rewards.router)
api_router.include_router(transactions.router)
api_router.include_router(leaderboard.router)
api_router.include_router(notifications.router)
api_router.include_router(events.router)
api_router.include_router(admin.router)
