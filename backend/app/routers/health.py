from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "chat-moderation-api"}


@router.get("/health/classifier")
async def classifier_health_check():
    """Classifier configuration health check."""
    from app.services.classifier_service import ClassifierService

    service = ClassifierService()
    if service.is_configured:
        return {
            "status": "configured",
            "service": "classifier",
            "model": service.model,
        }
    else:
        return {
            "status": "not_configured",
            "service": "classifier",
            "message": "Classifier API key missing. Set OPENROUTER_API_KEY in backend/.env",
        }


@router.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Welcome to the Chat Moderation API", "docs": "/docs"}
