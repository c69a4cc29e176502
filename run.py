"""
Application Entry Point
"""
import uvicorn

from auction_bidding.core.config import get_settings

settings = get_settings()

if __name__ == "__main__":
    print("=" * 70)
    print(f"🎯 {settings.APP_NAME} v{settings.APP_VERSION}")
    print("=" * 70)
    print(f"   URL: http://{settings.HOST}:{settings.PORT}")
    print(f"   Docs: http://{settings.HOST}:{settings.PORT}/docs")
    print(f"   Metrics: http://{settings.HOST}:{settings.PORT}/metrics")
    print("=" * 70)

    uvicorn.run(
        "auction_bidding.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
