import asyncio
import base64
import json

import pytest
from pydantic import ValidationError

from manga_redraw.editor.session import EditingMode
from manga_redraw.errors import InpaintingError, SubmitRejected
from manga_redraw.presets import MODE_PRESETS
from manga_redraw.schemas import (MaskContent, ProcessImageResponse,
                                  RedrawMode)
from manga_redraw.store import (IN_FLIGHT_MESSAGE, NO_CREDENTIAL_MESSAGE,
                                NO_IMAGE_MESSAGE, NO_MASK_MESSAGE,
                                CredentialStore, ProcessingStatus,
                                ProcessingStore)


class FakeService:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.release = None

    async def process(self, request):
        self.requests.append(request)
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def result_b64(make_png):
    return base64.b64encode(make_png(40, 30, (10, 20, 30, 255))).decode("ascii")


@pytest.fixture
def service(result_b64):
    return FakeService(ProcessImageResponse(success=True, processedImage=result_b64))


@pytest.fixture
def store(service):
    return ProcessingStore(service)


def paint(store):
    store.session.pointer_down((10.0, 10.0))
    store.session.pointer_up()


def ready(store, png_bytes):
    assert asyncio.run(store.load_image(png_bytes, "image/png"))
    paint(store)
    store.set_api_key("secret", persist=False)


class TestSubmitGating:

    def test_no_image(self, store, service):
        store.set_api_key("secret", persist=False)
        with pytest.raises(SubmitRejected, match=NO_IMAGE_MESSAGE):
            asyncio.run(store.submit())
        assert service.requests == []

    def test_no_mask(self, store, service, png_bytes):
        asyncio.run(store.load_image(png_bytes))
        store.set_api_key("secret", persist=False)
        with pytest.raises(SubmitRejected, match=NO_MASK_MESSAGE):
            asyncio.run(store.submit())
        assert service.requests == []

    def test_no_credential(self, store, service, png_bytes):
        asyncio.run(store.load_image(png_bytes))
        paint(store)
        with pytest.raises(SubmitRejected, match=NO_CREDENTIAL_MESSAGE):
            asyncio.run(store.submit())
        assert service.requests == []

    def test_cleared_mask(self, store, service, png_bytes):
        ready(store, png_bytes)
        store.session.clear()
        with pytest.raises(SubmitRejected, match=NO_MASK_MESSAGE):
            asyncio.run(store.submit())
        assert service.requests == []

    def test_mask_undone_to_empty(self, store, service, png_bytes):
        ready(store, png_bytes)
        store.session.undo()
        with pytest.raises(SubmitRejected, match=NO_MASK_MESSAGE):
            asyncio.run(store.submit())
        assert service.requests == []

        store.session.redo()
        assert asyncio.run(store.submit())

    def test_cleared_polygons(self, store, service, png_bytes):
        assert asyncio.run(store.load_image(png_bytes, "image/png"))
        store.set_api_key("secret", persist=False)
        session = store.session
        session.set_mode(EditingMode.POLYGON)
        for point in [(5.0, 5.0), (30.0, 5.0), (30.0, 25.0)]:
            session.pointer_down(point)
            session.pointer_up()
        assert session.complete_polygons() is not None
        assert store.mask is not None

        session.clear()

        with pytest.raises(SubmitRejected, match=NO_MASK_MESSAGE):
            asyncio.run(store.submit())
        assert service.requests == []

    def test_brush_mask_not_sent_from_polygon_mode(self, store, service, png_bytes):
        ready(store, png_bytes)
        store.session.set_mode(EditingMode.POLYGON)
        with pytest.raises(SubmitRejected, match=NO_MASK_MESSAGE):
            asyncio.run(store.submit())
        assert service.requests == []

    def test_messages_are_distinct(self):
        messages = {NO_IMAGE_MESSAGE, NO_MASK_MESSAGE, NO_CREDENTIAL_MESSAGE, IN_FLIGHT_MESSAGE}
        assert len(messages) == 4


def test_upload_starts_masking(store, png_bytes):
    assert asyncio.run(store.load_image(png_bytes, "image/png"))
    assert store.status is ProcessingStatus.IMAGE_LOADED
    assert store.mime_type == "image/png"
    assert store.session.width == 40

    paint(store)

    assert store.status is ProcessingStatus.MASKING
    assert store.mask == store.session.mask


def test_successful_submit(store, service, png_bytes, result_b64):
    ready(store, png_bytes)

    assert asyncio.run(store.submit())

    assert store.status is ProcessingStatus.RESULT
    assert store.result == result_b64
    assert not store.is_processing
    request = service.requests[0]
    assert request.apiKey == "secret"
    assert request.mask == store.mask
    assert base64.b64decode(request.image) == png_bytes
    assert request.params == store.params
    assert store.result_image().size == (40, 30)


def test_failed_submit_keeps_state(store, service, png_bytes):
    ready(store, png_bytes)
    service.response = ProcessImageResponse(success=False, error="API quota exceeded.")
    image, mask, history_length = store.image, store.mask, len(store.session.brush.surface.history)

    assert not asyncio.run(store.submit())

    assert store.status is ProcessingStatus.MASKING
    assert store.error == "API quota exceeded."
    assert not store.is_processing
    assert store.result is None
    assert store.image is image
    assert store.mask == mask
    assert len(store.session.brush.surface.history) == history_length


@pytest.mark.parametrize(
    "error, message",
    [
        (InpaintingError("Could not reach the processing server"), "Could not reach the processing server"),
        (RuntimeError("socket closed"), "socket closed"),
    ],
)
def test_service_exceptions_are_normalized(store, service, png_bytes, error, message):
    ready(store, png_bytes)
    service.error = error

    assert not asyncio.run(store.submit())

    assert store.error == message
    assert store.status is ProcessingStatus.MASKING
    assert not store.is_processing


def test_response_without_image_is_a_failure(store, service, png_bytes):
    ready(store, png_bytes)
    service.response = ProcessImageResponse(success=True)

    assert not asyncio.run(store.submit())
    assert store.error == "Processing failed"


def test_only_one_submit_in_flight(store, service, png_bytes):
    ready(store, png_bytes)

    async def scenario():
        service.release = asyncio.Event()
        first = asyncio.create_task(store.submit())
        await asyncio.sleep(0)
        assert store.is_processing

        with pytest.raises(SubmitRejected, match=IN_FLIGHT_MESSAGE):
            await store.submit()

        service.release.set()
        assert await first
        assert await store.submit()

    asyncio.run(scenario())
    assert len(service.requests) == 2


def test_submit_accepted_after_failure(store, service, png_bytes, result_b64):
    ready(store, png_bytes)
    service.error = InpaintingError("temporary")
    assert not asyncio.run(store.submit())

    service.error = None
    assert asyncio.run(store.submit())
    assert store.result == result_b64


def test_edit_mask_and_regenerate(store, service, png_bytes):
    ready(store, png_bytes)
    asyncio.run(store.submit())

    store.edit_mask()
    assert store.status is ProcessingStatus.MASKING
    assert store.result is None
    assert store.mask is not None
    assert store.session.has_edits

    asyncio.run(store.submit())
    assert asyncio.run(store.regenerate())
    assert service.requests[1].mask == service.requests[2].mask
    assert service.requests[1].image == service.requests[2].image


def test_regenerate_requires_a_result(store, png_bytes):
    ready(store, png_bytes)
    with pytest.raises(SubmitRejected):
        asyncio.run(store.regenerate())


def test_bad_upload_keeps_previous_image(store, png_bytes):
    ready(store, png_bytes)
    image, session = store.image, store.session

    assert not asyncio.run(store.load_image(b"definitely not an image"))

    assert store.image is image
    assert store.session is session
    assert store.mask is not None
    assert "Could not decode" in store.error


def test_new_upload_clears_mask_and_result(store, png_bytes, make_png):
    ready(store, png_bytes)
    asyncio.run(store.submit())

    assert asyncio.run(store.load_image(make_png(20, 20)))

    assert store.mask is None
    assert store.result is None
    assert store.session.width == 20
    assert store.status is ProcessingStatus.IMAGE_LOADED


def test_reset(store, png_bytes):
    ready(store, png_bytes)
    store.reset()
    assert store.status is ProcessingStatus.IDLE
    assert store.image is None
    assert store.mask is None
    assert store.session is None
    assert store.api_key == "secret"


def test_modes_and_params(store):
    assert store.params == MODE_PRESETS[RedrawMode.STANDARD_BUBBLE].params

    store.set_mode(RedrawMode.NARRATIVE_BOX)
    assert store.params.maskContent is MaskContent.FILL
    assert store.params.denoisingStrength == 0.55

    store.update_params(denoisingStrength=0.7, padding=16)
    assert store.params.denoisingStrength == 0.7
    assert store.params.padding == 16
    assert MODE_PRESETS[RedrawMode.NARRATIVE_BOX].params.denoisingStrength == 0.55

    with pytest.raises(ValidationError):
        store.update_params(denoisingStrength=2.0)
    assert store.params.denoisingStrength == 0.7

    store.set_mode(RedrawMode.NARRATIVE_BOX)
    assert store.params.denoisingStrength == 0.55


def test_save_result(store, png_bytes, tmp_path):
    ready(store, png_bytes)
    with pytest.raises(RuntimeError):
        store.save_result(tmp_path)
    asyncio.run(store.submit())

    path = store.save_result(tmp_path / "out")

    assert path.exists()
    assert path.name.startswith("manga-redraw-")
    assert path.suffix == ".png"


class TestCredentialStore:

    def test_missing_file(self, tmp_path):
        assert CredentialStore(tmp_path / "settings.json").load() == ""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        CredentialStore(path).save("AIza-test")
        assert CredentialStore(path).load() == "AIza-test"
        assert json.loads(path.read_text())["apiKey"] == "AIza-test"

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        assert CredentialStore(path).load() == ""

    def test_store_reads_and_writes_credential(self, tmp_path, service):
        credentials = CredentialStore(tmp_path / "settings.json")
        credentials.save("stored-key")

        store = ProcessingStore(service, credentials)
        assert store.api_key == "stored-key"

        store.set_api_key("new-key")
        assert credentials.load() == "new-key"
