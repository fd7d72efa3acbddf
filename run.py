"""
Estate AI Assistant Runner
Run with: python run.py
"""

import uvicorn

from estate_assistant.config import get_settings


if __name__ == "__main__":
    settings = get_settings()

    print(f"""
    Estate AI Assistant v{settings.APP_VERSION} ({settings.ENVIRONMENT})

    Starting server at http://{settings.HOST}:{settings.PORT}

    API Documentation: http://localhost:{settings.PORT}/docs
    """)

    uvicorn.run(
        "estate_assistant.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
