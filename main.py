import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from .env file before settings are read
load_dotenv()

from media_transcriber.config import Settings, get_settings
from media_transcriber.dependencies import get_pipeline
from media_transcriber.routers import info_router, text_router, transcription_router
from media_transcriber.utils.logging_utils import setup_logger


def create_app(settings: Settings = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()
    logger = setup_logger(settings.log_level)

    app = FastAPI(title="Media Transcriber API")

    # CORS configuration
    app.add_middleware(CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(transcription_router)
    app.include_router(text_router)
    app.include_router(info_router)

    # Application lifecycle events
    @app.on_event("startup")
    async def startup_event():
        """Create working directories and report configuration."""
        for directory in (settings.uploads_dir, settings.temp_dir):
            os.makedirs(directory, exist_ok=True)

        logger.info("Starting application...")
        ffmpeg_path = settings.resolved_ffmpeg_path
        if ffmpeg_path:
            logger.info(f"FFmpeg found: {ffmpeg_path}")
        else:
            logger.warning(f"FFmpeg not found ({settings.ffmpeg_binary}) - conversions will fail")
        if settings.has_assemblyai_credential:
            logger.info("AssemblyAI configured")
        else:
            logger.warning("ASSEMBLYAI_API_KEY not configured - transcriptions will be simulated")
        logger.info(f"Max concurrent transcriptions set to: {settings.max_concurrent_transcriptions}")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Close the AssemblyAI HTTP client."""
        logger.info("Shutting down application...")
        if get_pipeline.cache_info().currsize:
            await get_pipeline().client.aclose()

    @app.get("/")
    async def root():
        return {"message": "Welcome to the Media Transcriber API. POST a YouTube URL to /transcribe/remote-url or a file to /transcribe/upload."}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
