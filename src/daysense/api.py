"""DaySense API server."""

from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from daysense import __version__
from daysense.adapters.base import AdapterError, AuthenticationError
from daysense.adapters.identity import IdentityAdapter
from daysense.aggregators.analytics import AnalyticsSummary
from daysense.aggregators.daily import DailyAggregator
from daysense.aggregators.reflection import InsufficientDataError
from daysense.models import (
    BehavioralSignals,
    BioOrbInsight,
    DailyReflection,
    EnergyEntry,
    EnergyInference,
    Insight,
    Reflection,
    Task,
    TaskCreate,
    TaskRecommendation,
    TaskUpdate,
    UserProfile,
)
from daysense.scoring.energy import (
    ENERGY_STATE_DESCRIPTIONS,
    ENERGY_STATE_LABELS,
    energy_level_to_percentage,
)
from daysense.session import Session

logger = structlog.get_logger()


# ── Request / response models ────────────────────────────────────────


class EnergyRequest(BaseModel):
    level: int = Field(ge=1, le=5)


class EnergyResponse(BaseModel):
    energy_level: int
    energy_state: str
    label: str
    description: str
    percentage: int
    timeline: list[EnergyEntry]


class NorthStarRequest(BaseModel):
    north_star: str


class InsightRequest(BaseModel):
    question: str | None = None


class ReflectionResponse(BaseModel):
    reflection: DailyReflection
    narrative: Reflection | None = None


class SignUpRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)


class SignInRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    north_star: str | None = None
    energy_level: int | None = Field(default=None, ge=1, le=5)
    chronotype: str | None = None
    notifications_enabled: bool | None = None
    daily_checkins_enabled: bool | None = None
    task_reminders_enabled: bool | None = None
    focus_sessions_enabled: bool | None = None


class OnboardingRequest(BaseModel):
    energy_level: int = Field(ge=1, le=5)
    north_star: str | None = None
    chronotype: str | None = None


# ── App ──────────────────────────────────────────────────────────────


def get_aggregator(request: Request) -> DailyAggregator:
    day: DailyAggregator = request.app.state.aggregator
    day.record_activity()
    return day


def get_session(request: Request) -> Session:
    return request.app.state.session


def create_app(
    aggregator: DailyAggregator | None = None, session: Session | None = None
) -> FastAPI:
    """Build the API around one tracking day and the user's session."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        try:
            from daysense.db import init_db

            await init_db()
        except Exception as e:
            logger.warning("Database initialization failed", error=str(e))

        day = aggregator or DailyAggregator()
        await day.__aenter__()
        app.state.aggregator = day

        identity: IdentityAdapter | None = None
        if session is None:
            identity = IdentityAdapter()
            await identity.connect()
            app.state.session = Session(identity, day.store)
        else:
            app.state.session = session

        yield

        if identity is not None:
            await identity.disconnect()
        await day.__aexit__(None, None, None)
        try:
            from daysense.db import close_db

            await close_db()
        except Exception as e:
            logger.warning("Database shutdown failed", error=str(e))

    app = FastAPI(
        title="DaySense API",
        description="Energy-aware productivity coaching",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AdapterError)
    async def adapter_error(request: Request, exc: AdapterError) -> JSONResponse:
        code = (
            status.HTTP_401_UNAUTHORIZED
            if isinstance(exc, AuthenticationError)
            else status.HTTP_502_BAD_GATEWAY
        )
        day = getattr(request.app.state, "aggregator", None)
        task_error = day.tasks.error if day and code != status.HTTP_401_UNAUTHORIZED else None
        detail = task_error or exc.message
        return JSONResponse(status_code=code, content={"detail": detail})

    @app.exception_handler(InsufficientDataError)
    async def insufficient_data(request: Request, exc: InsufficientDataError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": exc.message},
        )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/api/status")
    async def get_status(day: DailyAggregator = Depends(get_aggregator)) -> dict[str, Any]:
        """Today's energy, flow score and task counts."""
        return day.get_status()

    # ── Energy ───────────────────────────────────────────────────────

    def _energy(day: DailyAggregator) -> EnergyResponse:
        state = day.tracker.energy_state
        return EnergyResponse(
            energy_level=day.tracker.energy_level,
            energy_state=state.value,
            label=ENERGY_STATE_LABELS[state],
            description=ENERGY_STATE_DESCRIPTIONS[state],
            percentage=energy_level_to_percentage(day.tracker.energy_level),
            timeline=day.tracker.timeline,
        )

    @app.get("/api/energy")
    async def get_energy(day: DailyAggregator = Depends(get_aggregator)) -> EnergyResponse:
        return _energy(day)

    @app.post("/api/energy")
    async def set_energy(
        body: EnergyRequest, day: DailyAggregator = Depends(get_aggregator)
    ) -> EnergyResponse:
        day.set_energy(body.level)
        return _energy(day)

    @app.post("/api/energy/infer")
    async def infer_energy(
        day: DailyAggregator = Depends(get_aggregator),
    ) -> EnergyInference:
        """Infer energy from the latest signals, sampling first if there are none."""
        if day.tracker.data.passive_signals is None:
            day.sample_signals()
        inference = day.infer_energy()
        if inference is None:
            raise HTTPException(status_code=409, detail="No behavioral signals available")
        return inference

    @app.put("/api/north-star")
    async def set_north_star(
        body: NorthStarRequest, day: DailyAggregator = Depends(get_aggregator)
    ) -> dict[str, str]:
        day.set_north_star(body.north_star)
        return {"north_star": day.tracker.north_star}

    # ── Tasks ────────────────────────────────────────────────────────

    @app.get("/api/tasks")
    async def list_tasks(day: DailyAggregator = Depends(get_aggregator)) -> list[Task]:
        return day.tasks.tasks

    @app.post("/api/tasks", status_code=status.HTTP_201_CREATED)
    async def add_task(
        body: TaskCreate, day: DailyAggregator = Depends(get_aggregator)
    ) -> Task:
        return await day.tasks.add_task(body)

    @app.get("/api/tasks/optimal")
    async def optimal_tasks(
        energy_level: int | None = Query(None, ge=1, le=5),
        day: DailyAggregator = Depends(get_aggregator),
    ) -> list[Task]:
        """Pending tasks within reach of the given (or current) energy level."""
        return day.tasks.get_optimal(energy_level or day.tracker.energy_level)

    @app.patch("/api/tasks/{task_id}")
    async def update_task(
        task_id: str, body: TaskUpdate, day: DailyAggregator = Depends(get_aggregator)
    ) -> Task:
        if day.tasks.get(task_id) is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return await day.tasks.update_task(task_id, body)

    @app.delete("/api/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_task(task_id: str, day: DailyAggregator = Depends(get_aggregator)) -> None:
        if day.tasks.get(task_id) is None:
            raise HTTPException(status_code=404, detail="Task not found")
        await day.tasks.delete_task(task_id)

    @app.post("/api/tasks/{task_id}/toggle")
    async def toggle_task(task_id: str, day: DailyAggregator = Depends(get_aggregator)) -> Task:
        task = await day.tasks.toggle_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return task

    # ── Scores and signals ───────────────────────────────────────────

    @app.get("/api/flow-score")
    async def flow_score(day: DailyAggregator = Depends(get_aggregator)) -> dict[str, Any]:
        data = day.tracker.data
        history = day.tracker.history
        return {
            "score": data.flow_score,
            "energy_task_alignment": data.energy_task_alignment_score,
            "completion_efficiency": data.completion_efficiency_score,
            "focus_consistency": data.focus_consistency_score,
            "weekly_average": history.weekly_average,
            "history": [r.model_dump(mode="json") for r in history.records],
            "last_calculated": day.tracker.last_calculated,
            "error": day.tracker.error,
        }

    @app.post("/api/signals/sample")
    async def sample_signals(day: DailyAggregator = Depends(get_aggregator)) -> dict[str, Any]:
        signals: BehavioralSignals = day.sample_signals()
        return signals.model_dump(mode="json", by_alias=True)

    # ── Narration ────────────────────────────────────────────────────

    @app.post("/api/insights")
    async def insights(
        body: InsightRequest, day: DailyAggregator = Depends(get_aggregator)
    ) -> Insight:
        return await day.get_insights(body.question)

    @app.get("/api/recommendations")
    async def recommendations(
        day: DailyAggregator = Depends(get_aggregator),
    ) -> list[TaskRecommendation]:
        return await day.get_recommendations()

    @app.get("/api/bio-orb")
    async def bio_orb(day: DailyAggregator = Depends(get_aggregator)) -> BioOrbInsight:
        return await day.get_bio_orb()

    @app.post("/api/reflection")
    async def reflect(day: DailyAggregator = Depends(get_aggregator)) -> ReflectionResponse:
        reflection = await day.evening_reflection()
        return ReflectionResponse(reflection=reflection, narrative=day.journal.last_narrative)

    @app.get("/api/reflections")
    async def reflections(
        limit: int = Query(7, ge=1, le=100),
        day: DailyAggregator = Depends(get_aggregator),
    ) -> list[DailyReflection]:
        return day.journal.get_recent(limit)

    @app.get("/api/analytics")
    async def analytics(day: DailyAggregator = Depends(get_aggregator)) -> AnalyticsSummary:
        return await day.get_analytics()

    # ── Account ──────────────────────────────────────────────────────

    def _signed_in(session: Session) -> UserProfile:
        if session.profile is None:
            raise HTTPException(status_code=401, detail="Not signed in")
        return session.profile

    @app.post("/api/auth/sign-up", status_code=status.HTTP_201_CREATED)
    async def sign_up(
        body: SignUpRequest,
        session: Session = Depends(get_session),
        day: DailyAggregator = Depends(get_aggregator),
    ) -> UserProfile:
        profile = await session.sign_up(body.email, body.password, body.full_name)
        await day.use_profile(profile)
        return profile

    @app.post("/api/auth/sign-in")
    async def sign_in(
        body: SignInRequest,
        session: Session = Depends(get_session),
        day: DailyAggregator = Depends(get_aggregator),
    ) -> UserProfile:
        """Sign in and switch the tracking day to the user's profile."""
        profile = await session.sign_in(body.email, body.password)
        if profile is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        await day.use_profile(profile)
        return profile

    @app.post("/api/auth/sign-out", status_code=status.HTTP_204_NO_CONTENT)
    async def sign_out(session: Session = Depends(get_session)) -> None:
        await session.sign_out()

    @app.get("/api/profile")
    async def get_profile(session: Session = Depends(get_session)) -> UserProfile:
        return _signed_in(session)

    @app.patch("/api/profile")
    async def update_profile(
        body: ProfileUpdate,
        session: Session = Depends(get_session),
        day: DailyAggregator = Depends(get_aggregator),
    ) -> UserProfile:
        _signed_in(session)
        profile = await session.update_profile(**body.model_dump(exclude_unset=True))
        await day.use_profile(profile)
        return profile

    @app.post("/api/onboarding")
    async def onboarding(
        body: OnboardingRequest,
        session: Session = Depends(get_session),
        day: DailyAggregator = Depends(get_aggregator),
    ) -> UserProfile:
        _signed_in(session)
        profile = await session.complete_onboarding(
            body.energy_level, body.north_star, body.chronotype
        )
        await day.use_profile(profile)
        return profile


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Run the API server."""
    import uvicorn

    from daysense.logging_config import setup_logging

    setup_logging()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
