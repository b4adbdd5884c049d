import asyncio, json, pathlib
import pytest, respx, httpx
from dental_schedule.client import ClinicApiClient
from dental_schedule.errors import BusyError, FetchError, MutationError, ValidationError
from dental_schedule.form import AppointmentForm, submit
from dental_schedule.lifecycle import ScheduleController, transition
from dental_schedule.models import AppointmentDraft, AppointmentStatus

FIX = pathlib.Path(__file__).parent / "fixtures"
BASE = "http://clinic.test"
S = AppointmentStatus


def fixture_list():
    return json.loads((FIX / "appointments_list.json").read_text(encoding="utf-8"))


def new_controller(**kwargs):
    return ScheduleController(ClinicApiClient(BASE), **kwargs)


def test_transitions_are_permissive_by_default():
    assert transition(S.COMPLETED, S.PENDING) == S.PENDING
    assert transition(S.CANCELLED, "CONFIRMADA") == S.CONFIRMED


def test_guarded_transitions():
    assert transition(S.PENDING, S.CONFIRMED, guarded=True) == S.CONFIRMED
    assert transition(S.COMPLETED, S.COMPLETED, guarded=True) == S.COMPLETED
    with pytest.raises(ValidationError) as info:
        transition(S.COMPLETED, S.PENDING, guarded=True)
    assert "status" in info.value.errors


@pytest.mark.asyncio
async def test_load_failure_keeps_previous_collection():
    ctl = new_controller()
    with respx.mock(base_url=BASE) as m:
        route = m.get("/api/appointments")
        route.respond(200, json=fixture_list())
        await ctl.load()
        assert len(ctl.appointments) == 4

        route.respond(500, json={"error": "Base de datos caída"})
        with pytest.raises(FetchError):
            await ctl.load()
        assert len(ctl.appointments) == 4
        assert ctl.error == "Base de datos caída"


@pytest.mark.asyncio
async def test_load_by_doctor_and_range_is_reused_on_reload():
    ctl = new_controller()
    created = {"id": "20", "patientId": "P1", "doctorId": "D1", "start": "2025-05-16T12:00:00", "status": "PENDING"}
    with respx.mock(base_url=BASE) as m:
        scoped = m.get("/api/appointments/doctor/D1").respond(200, json=[])
        m.post("/api/appointments").respond(201, json=created)

        await ctl.load(doctor_id="D1", date_from="2025-05-16", date_to="2025-05-16")
        await ctl.create(AppointmentDraft(patient_id="P1", doctor_id="D1", start="2025-05-16T12:00:00"))
        assert scoped.call_count == 2
        assert scoped.calls.last.request.url.params["from"] == "2025-05-16"


@pytest.mark.asyncio
async def test_create_reloads_once_and_new_appointment_is_pending():
    ctl = new_controller()
    created = {"id": "20", "patientId": "P1", "doctorId": "D1", "start": "2025-05-16T09:00:00",
               "end": "2025-05-16T10:00:00", "status": "PENDING", "durationSlots": 2}
    with respx.mock(base_url=BASE) as m:
        listing = m.get("/api/appointments").respond(200, json=fixture_list() + [created])
        post = m.post("/api/appointments").respond(201, json=created)

        form = AppointmentForm(patient_id="P1", doctor_id="D1", date="2025-05-16", time="09:00", duration_slots="2")
        result = await submit(ctl, form)

        assert post.call_count == 1
        assert listing.call_count == 1
        body = json.loads(post.calls.last.request.content)
        assert body["start"] == "2025-05-16T09:00:00"
        assert body["end"] == "2025-05-16T10:00:00"
        assert result.status == S.PENDING
        assert [a.id for a in ctl.appointments if a.id == "20"] == ["20"]
        assert ctl.error is None


@pytest.mark.asyncio
async def test_failed_create_leaves_collection_unchanged():
    ctl = new_controller()
    draft = AppointmentDraft(patient_id="P1", doctor_id="D1", start="2025-05-16T09:00:00")
    with respx.mock(base_url=BASE) as m:
        listing = m.get("/api/appointments").respond(200, json=fixture_list())
        post = m.post("/api/appointments")
        await ctl.load()
        before = list(ctl.appointments)

        post.respond(400, json={"message": "Paciente inexistente"})
        with pytest.raises(MutationError) as info:
            await ctl.create(draft)
        assert "Paciente inexistente" in info.value.message
        assert ctl.error == "Paciente inexistente"
        assert ctl.appointments == before

        post.mock(side_effect=httpx.ConnectTimeout)
        with pytest.raises(MutationError):
            await ctl.create(draft)
        assert ctl.error == "Error al crear la cita"
        assert ctl.appointments == before
        assert listing.call_count == 1


@pytest.mark.asyncio
async def test_confirm_changes_only_that_appointment():
    ctl = new_controller()
    data = fixture_list()
    confirmed = dict(data[0], status="CONFIRMED")
    after = [confirmed] + data[1:]
    with respx.mock(base_url=BASE) as m:
        listing = m.get("/api/appointments")
        listing.respond(200, json=data)
        await ctl.load()
        before = {a.id: a.status for a in ctl.appointments}

        listing.respond(200, json=after)
        m.put("/api/appointments/1/confirm").respond(200, json=confirmed)
        result = await ctl.confirm("1")

        assert result.status == S.CONFIRMED
        assert listing.call_count == 2
        statuses = {a.id: a.status for a in ctl.appointments}
        assert statuses["1"] == S.CONFIRMED
        assert {k: v for k, v in statuses.items() if k != "1"} == {k: v for k, v in before.items() if k != "1"}


@pytest.mark.asyncio
async def test_update_delete_and_cancel_reload():
    ctl = new_controller()
    data = fixture_list()
    with respx.mock(base_url=BASE) as m:
        listing = m.get("/api/appointments").respond(200, json=data)
        m.put("/api/appointments/2").respond(200, json=dict(data[1], notes="Traer radiografía"))
        m.delete("/api/appointments/3").respond(204)
        cancel = m.delete("/api/appointments/4/cancel").respond(204)

        await ctl.load()
        updated = await ctl.update("2", {"notes": "Traer radiografía"})
        assert updated.notes == "Traer radiografía"
        await ctl.delete("3")
        await ctl.cancel("4", "Reprogramada")
        assert cancel.calls.last.request.url.params["reason"] == "Reprogramada"
        assert listing.call_count == 4


@pytest.mark.asyncio
async def test_failed_delete_keeps_entry():
    ctl = new_controller()
    with respx.mock(base_url=BASE) as m:
        m.get("/api/appointments").respond(200, json=fixture_list())
        m.delete("/api/appointments/3").respond(404)

        await ctl.load()
        with pytest.raises(MutationError) as info:
            await ctl.delete("3")
        assert info.value.message == "Error al eliminar la cita"
        assert "3" in [a.id for a in ctl.appointments]


@pytest.mark.asyncio
async def test_set_status_goes_through_update():
    ctl = new_controller()
    data = fixture_list()
    with respx.mock(base_url=BASE) as m:
        m.get("/api/appointments").respond(200, json=data)
        put = m.put("/api/appointments/1").respond(200, json=dict(data[0], status="WAITING_ROOM"))

        await ctl.load()
        result = await ctl.set_status("1", "WAITING_ROOM")
        assert json.loads(put.calls.last.request.content) == {"status": "WAITING_ROOM"}
        assert result.status == S.WAITING_ROOM


@pytest.mark.asyncio
async def test_guarded_mode_blocks_before_backend_call():
    ctl = new_controller(guarded_transitions=True)
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        m.get("/api/appointments").respond(200, json=fixture_list())
        confirm = m.put("/api/appointments/4/confirm")

        await ctl.load()
        # appointment 4 is COMPLETED
        with pytest.raises(ValidationError):
            await ctl.confirm("4")
        assert not confirm.called
        assert ctl.error


@pytest.mark.asyncio
async def test_second_mutation_on_same_appointment_is_refused():
    ctl = new_controller()
    data = fixture_list()
    release = asyncio.Event()

    async def slow_update(request):
        await release.wait()
        return httpx.Response(200, json=data[0])

    with respx.mock(base_url=BASE) as m:
        m.get("/api/appointments").respond(200, json=data)
        m.put("/api/appointments/1").mock(side_effect=slow_update)
        m.delete("/api/appointments/2").respond(204)

        first = asyncio.create_task(ctl.update("1", {"notes": "x"}))
        await asyncio.sleep(0)
        assert ctl.loading
        with pytest.raises(BusyError):
            await ctl.delete("1")
        # other appointments are not blocked
        await ctl.delete("2")

        release.set()
        await first
        assert not ctl.loading


@pytest.mark.asyncio
async def test_stale_load_is_discarded():
    ctl = new_controller()
    release = asyncio.Event()

    async def slow_listing(request):
        await release.wait()
        return httpx.Response(200, json=fixture_list())

    with respx.mock(base_url=BASE) as m:
        m.get("/api/appointments").mock(side_effect=slow_listing)
        m.get("/api/appointments/doctor/D2").respond(200, json=[fixture_list()[2]])

        stale = asyncio.create_task(ctl.load())
        await asyncio.sleep(0)
        await ctl.load(doctor_id="D2")
        release.set()
        await stale

        assert [a.id for a in ctl.appointments] == ["3"]
