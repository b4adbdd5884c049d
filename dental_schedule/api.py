import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, field_validator

from .board import Board, build_board
from .context import ScheduleContext, build_context
from .errors import BusyError, ScheduleError, ValidationError
from .form import AppointmentForm, FormOptions, form_for_appointment, form_for_slot, load_form_options, submit
from .models import Appointment, AppointmentStatus, ViewType
from .placement import HEADER_OFFSET, cell_to_slot
from .timegrid import SLOT_COUNT

logger = logging.getLogger(__name__)


class StatusChange(BaseModel):
    status: AppointmentStatus

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        return AppointmentStatus.parse(value)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ctx = build_context()
    logging.basicConfig(level=ctx.settings.log_level.upper())
    app.state.context = ctx
    logger.info("Schedule service using backend %s", ctx.settings.base_url)
    yield


# HTTPBearer scheme so Swagger-UI can attach the Authorization header globally
auth_scheme = HTTPBearer(auto_error=False)

app = FastAPI(title="Dental Schedule Service", lifespan=lifespan)


def get_context(request: Request) -> ScheduleContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        ctx = request.app.state.context = build_context()
    return ctx


def verify_key(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
):
    """Validate the Bearer token when SCHEDULE_API_KEY is configured."""
    expected = get_context(request).settings.api_key
    if not expected:
        return
    if credentials is None or credentials.scheme.lower() != "bearer" or credentials.credentials != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


@app.exception_handler(ScheduleError)
async def schedule_error_handler(request: Request, exc: ScheduleError):
    if isinstance(exc, ValidationError):
        return JSONResponse(status_code=422, content={"detail": exc.message, "errors": exc.errors})
    if isinstance(exc, BusyError):
        return JSONResponse(status_code=409, content={"detail": exc.message})
    # backend failures: pass 404 through, everything else is a bad gateway
    status = 404 if exc.status_code == 404 else 502
    return JSONResponse(status_code=status, content={"detail": exc.message})


# Schedule grid ----------------------------------------------------------------

async def _board(ctx: ScheduleContext, doctor_id: Optional[str] = None, refresh: bool = False) -> Board:
    if refresh or not ctx.controller.loaded:
        await ctx.controller.load()
    if refresh or not ctx.doctors:
        await ctx.refresh_doctors()
    return build_board(ctx.controller.appointments, ctx.doctors, ctx.navigation, doctor_id)


@app.get("/schedule", dependencies=[Depends(verify_key)], response_model=Board)
async def get_schedule(
    doctor_id: Optional[str] = Query(None, description="Only show this doctor's column"),
    refresh: bool = Query(False, description="Reload appointments and doctors from the backend"),
    ctx: ScheduleContext = Depends(get_context),
):
    return await _board(ctx, doctor_id, refresh)


@app.post("/schedule/previous", dependencies=[Depends(verify_key)], response_model=Board)
async def previous_page(ctx: ScheduleContext = Depends(get_context)):
    ctx.navigation.previous()
    return await _board(ctx)


@app.post("/schedule/next", dependencies=[Depends(verify_key)], response_model=Board)
async def next_page(ctx: ScheduleContext = Depends(get_context)):
    ctx.navigation.next()
    return await _board(ctx)


@app.post("/schedule/today", dependencies=[Depends(verify_key)], response_model=Board)
async def today_page(ctx: ScheduleContext = Depends(get_context)):
    ctx.navigation.today()
    return await _board(ctx)


@app.put("/schedule/view", dependencies=[Depends(verify_key)], response_model=Board)
async def set_view(view_type: ViewType = Query(...), ctx: ScheduleContext = Depends(get_context)):
    ctx.navigation.set_view_type(view_type)
    return await _board(ctx)


@app.get("/schedule/slots/{doctor_id}/{cell}", dependencies=[Depends(verify_key)], response_model=AppointmentForm)
async def slot_form(
    doctor_id: str,
    cell: int,
    patient_id: str = Query("", description="Preselect a patient"),
    ctx: ScheduleContext = Depends(get_context),
):
    """Prefilled draft for a click on a grid cell."""
    # the board renders SLOT_COUNT cells, the first HEADER_OFFSET of them are header
    if not HEADER_OFFSET <= cell < SLOT_COUNT:
        raise HTTPException(status_code=422, detail="Cell is outside the scheduling day")
    return form_for_slot(cell_to_slot(cell), doctor_id, ctx.navigation.anchor_date, patient_id)


@app.get("/form-options", dependencies=[Depends(verify_key)], response_model=FormOptions)
async def form_options(ctx: ScheduleContext = Depends(get_context)):
    return await load_form_options(ctx.client)


# Appointment lifecycle ----------------------------------------------------------

@app.get("/appointments/{appt_id}/form", dependencies=[Depends(verify_key)], response_model=AppointmentForm)
async def edit_form(appt_id: str, ctx: ScheduleContext = Depends(get_context)):
    return form_for_appointment(await ctx.controller.get(appt_id))


@app.get("/patients/{patient_id}/appointments", dependencies=[Depends(verify_key)], response_model=list[Appointment])
async def patient_appointments(patient_id: str, ctx: ScheduleContext = Depends(get_context)):
    return await ctx.controller.list_for_patient(patient_id)


@app.post("/appointments", dependencies=[Depends(verify_key)], response_model=Appointment, status_code=201)
async def create_appointment(form: AppointmentForm, ctx: ScheduleContext = Depends(get_context)):
    form.appointment_id = None
    return await submit(ctx.controller, form)


@app.put("/appointments/{appt_id}", dependencies=[Depends(verify_key)], response_model=Appointment)
async def update_appointment(appt_id: str, form: AppointmentForm, ctx: ScheduleContext = Depends(get_context)):
    form.appointment_id = appt_id
    return await submit(ctx.controller, form)


@app.put("/appointments/{appt_id}/status", dependencies=[Depends(verify_key)], response_model=Appointment)
async def change_status(appt_id: str, change: StatusChange, ctx: ScheduleContext = Depends(get_context)):
    return await ctx.controller.set_status(appt_id, change.status)


@app.put("/appointments/{appt_id}/confirm", dependencies=[Depends(verify_key)], response_model=Appointment)
async def confirm_appointment(appt_id: str, ctx: ScheduleContext = Depends(get_context)):
    return await ctx.controller.confirm(appt_id)


@app.delete("/appointments/{appt_id}/cancel", dependencies=[Depends(verify_key)], status_code=204)
async def cancel_appointment(
    appt_id: str,
    reason: Optional[str] = Query(None, description="Why the appointment was cancelled"),
    ctx: ScheduleContext = Depends(get_context),
):
    await ctx.controller.cancel(appt_id, reason)
    return None


@app.delete("/appointments/{appt_id}", dependencies=[Depends(verify_key)], status_code=204)
async def delete_appointment(appt_id: str, ctx: ScheduleContext = Depends(get_context)):
    await ctx.controller.delete(appt_id)
    return None
