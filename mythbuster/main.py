from __future__ import annotations

import logging
import os
import secrets
import time
from typing import Callable

from fastapi import Cookie, FastAPI, Form, Header, Request
from fastapi.responses import JSONResponse

from mythbuster.config import Settings, load_settings
from mythbuster.errors import InputValidationError, MissingCredentialError
from mythbuster.infra.cache import init_cache, now_iso
from mythbuster.infra.db import init_db
from mythbuster.llm.provider_client import ProviderClient
from mythbuster.models import ResponseEnvelope, SignupRequest
from mythbuster.services import community
from mythbuster.services.game import check_answer
from mythbuster.services.orchestrator import AIOrchestrator
from mythbuster.services.quota import QuotaLedger
from mythbuster.services.request_kinds import ALL_KINDS


logger = logging.getLogger("mythbuster")

USER_KEY_COOKIE = "user_provided_api_key"
USER_KEY_MAX_AGE = 30 * 24 * 60 * 60


def _envelope_response(envelope: dict) -> JSONResponse:
    status = 400 if envelope.get("errorCode") == InputValidationError.code else 200
    return JSONResponse(envelope, status_code=status)


def create_app(
    settings: Settings | None = None,
    client: ProviderClient | None = None,
    now_fn: Callable[[], float] = time.time,
) -> FastAPI:
    """Build the service. Run with ``uvicorn mythbuster.main:create_app --factory``."""
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    cache = init_cache(settings.redis_url, settings.cache_maxsize, now_fn)
    db = init_db(settings.database_url)
    ledger = QuotaLedger(db, now_fn)
    client = client or ProviderClient(
        api_url=settings.provider_api_url,
        model=settings.provider_model,
        search_context=settings.provider_search_context,
        timeout=settings.request_timeout,
        retries=settings.provider_retries,
        json_schema=settings.provider_json_schema,
    )
    orchestrator = AIOrchestrator(settings, cache, ledger, client)

    app = FastAPI(title="mythbuster")
    app.state.settings = settings
    app.state.cache = cache
    app.state.db = db
    app.state.ledger = ledger
    app.state.orchestrator = orchestrator

    def _require_admin(token: str | None) -> JSONResponse | None:
        if not settings.admin_token:
            return JSONResponse({"success": False, "error": "Admin actions are disabled."}, status_code=403)
        if not token or not secrets.compare_digest(token, settings.admin_token):
            return JSONResponse({"success": False, "error": "Invalid admin token."}, status_code=403)
        return None

    @app.exception_handler(MissingCredentialError)
    def missing_credential(request: Request, exc: MissingCredentialError):
        return JSONResponse(
            ResponseEnvelope(success=False, error=exc.message, errorCode="missing_credential").model_dump(),
            status_code=500,
        )

    @app.exception_handler(InputValidationError)
    def invalid_input(request: Request, exc: InputValidationError):
        return JSONResponse(
            ResponseEnvelope(success=False, error=exc.message, errorCode=exc.code).model_dump(),
            status_code=400,
        )

    @app.get("/health")
    def health():
        return {
            "ok": True,
            "service": "mythbuster",
            "version": os.getenv("SERVICE_VERSION") or os.getenv("GIT_SHA") or "dev",
            "tsISO": now_iso(),
            "provider": {
                "model": settings.provider_model,
                "house_key": bool(settings.provider_api_key),
                "json_schema": settings.provider_json_schema,
            },
            "cache": {"entries": len(cache), "redis": cache.redis_client is not None},
            "quota": {
                "day": ledger.today(),
                "usage": ledger.snapshot(sorted({k.quota_feature for k in ALL_KINDS.values()})),
                "daily_limit": settings.quota_daily_limit,
            },
            "community_signups": community.signup_count(db),
        }

    @app.post("/api/myths/verify")
    def verify_myth_form(
        myth: str | None = Form(None),
        user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE),
    ):
        return _envelope_response(orchestrator.verify_myth(myth, user_api_key=user_key))

    @app.get("/api/myths/verify")
    def verify_myth_query(
        myth: str | None = None,
        user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE),
    ):
        return _envelope_response(orchestrator.verify_myth(myth, user_api_key=user_key))

    @app.post("/api/research/lens")
    def research_lens(
        mythStatement: str | None = Form(None),
        lensType: str | None = Form(None),
        lensName: str | None = Form(None),
        customQuery: str | None = Form(None),
        user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE),
    ):
        envelope = orchestrator.research_lens(
            mythStatement, lensType, lens_name=lensName, custom_query=customQuery, user_api_key=user_key
        )
        return _envelope_response(envelope)

    @app.post("/api/research/source")
    def analyze_source(
        sourceUrl: str | None = Form(None),
        sourceName: str | None = Form(None),
        mythContext: str | None = Form(None),
        analysisType: str | None = Form(None),
        customQuery: str | None = Form(None),
        user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE),
    ):
        envelope = orchestrator.analyze_source(
            sourceUrl,
            mythContext,
            analysis_type=analysisType,
            source_name=sourceName,
            custom_query=customQuery,
            user_api_key=user_key,
        )
        return _envelope_response(envelope)

    @app.post("/api/research/synthesis")
    def synthesize_insights(
        mythStatement: str | None = Form(None),
        lensResults: str | None = Form(None),
        user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE),
    ):
        return _envelope_response(orchestrator.synthesize_insights(mythStatement, lensResults, user_api_key=user_key))

    @app.get("/api/tracks")
    def track_concepts(user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE)):
        return _envelope_response(orchestrator.generate_track_concepts(user_api_key=user_key))

    @app.post("/api/tracks/{track_id}/myth")
    def track_myth(
        track_id: str,
        trackTitle: str | None = Form(None),
        trackCategory: str | None = Form(None),
        trackDifficulty: str | None = Form(None),
        totalMythsInTrack: str | None = Form(None),
        mythIndex: str | None = Form(None),
        user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE),
    ):
        envelope = orchestrator.generate_track_myth(
            track_id,
            trackTitle,
            trackCategory,
            trackDifficulty,
            totalMythsInTrack,
            mythIndex,
            user_api_key=user_key,
        )
        return _envelope_response(envelope)

    @app.post("/api/game/statement")
    def game_statement(
        difficulty: str | None = Form(None),
        category: str | None = Form(None),
        user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE),
    ):
        return _envelope_response(orchestrator.generate_game_statement(difficulty, category, user_api_key=user_key))

    @app.post("/api/game/answer")
    def game_answer(
        answer: str | None = Form(None),
        isTrue: str | None = Form(None),
        confidence: str | None = Form(None),
        statement: str | None = Form(None),
        explanation: str | None = Form(None),
        citations: str | None = Form(None),
    ):
        result = check_answer(answer, isTrue, confidence, statement, explanation, citations)
        return {"success": True, **result.model_dump()}

    @app.get("/api/minimyths")
    def mini_myths(user_key: str | None = Cookie(None, alias=USER_KEY_COOKIE)):
        return _envelope_response(orchestrator.generate_mini_myths(user_api_key=user_key))

    @app.post("/api/admin/cache/clear")
    def clear_cache(x_admin_token: str | None = Header(None)):
        denied = _require_admin(x_admin_token)
        if denied is not None:
            return denied
        dropped = orchestrator.clear_cache()
        return {"success": True, "cleared": dropped}

    @app.post("/api/credentials")
    def update_credentials(apiKey: str | None = Form(None)):
        result = orchestrator.validate_api_key(apiKey)
        response = JSONResponse(result.model_dump(), status_code=200)
        if not result.success:
            return response
        if (apiKey or "").strip():
            response.set_cookie(
                USER_KEY_COOKIE,
                apiKey.strip(),
                max_age=USER_KEY_MAX_AGE,
                httponly=True,
                secure=settings.cookie_secure,
                samesite="strict",
                path="/",
            )
        else:
            response.delete_cookie(USER_KEY_COOKIE, path="/")
        return response

    @app.post("/api/community/signup")
    def community_signup(req: SignupRequest):
        result = community.save_signup(db, req.name, req.email)
        return JSONResponse(result.model_dump(), status_code=200 if result.success else 409)

    @app.get("/api/admin/community")
    def community_list(x_admin_token: str | None = Header(None)):
        denied = _require_admin(x_admin_token)
        if denied is not None:
            return denied
        signups = community.list_signups(db)
        return {"success": True, "count": len(signups), "data": signups}

    logger.info("mythbuster ready model=%s house_key=%s", settings.provider_model, bool(settings.provider_api_key))
    return app
