from fastapi import APIRouter, Depends

from ..services import Services, get_services

router = APIRouter(tags=["health"])


@router.get("/health")
def health(services: Services = Depends(get_services)):
	return {
		"status": "ok",
		"primary_configured": services.router.primary is not None,
		"secondary_configured": services.router.secondary is not None,
		"tts_configured": services.audio_cache.synthesizer is not None,
	}
