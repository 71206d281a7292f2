import io
import struct

import pytest

import server
from application.dto.trim_dto import EncodedArtifact
from application.ports.upload_port import IUploadClient
from trimmer.errors import UploadError


class FakeUploader(IUploadClient):
    def __init__(self, error: UploadError = None) -> None:
        self.error = error
        self.artifacts: list[EncodedArtifact] = []

    async def create(self, artifact: EncodedArtifact):
        if self.error is not None:
            raise self.error
        self.artifacts.append(artifact)
        return {"message": "archivo subido", "name": artifact.name}


@pytest.fixture
def client():
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c


def _form(content: bytes, upload_name: str = "song.wav", mime: str = "audio/wav", **fields) -> dict:
    data = {"file": (io.BytesIO(content), upload_name, mime)}
    data.update(fields)
    return data


class TestTrimEndpoint:
    """POST /trim"""

    def test_returns_wav_attachment(self, client, stereo_wav) -> None:
        resp = client.post(
            "/trim",
            data=_form(stereo_wav, start="0.25", end="0.5", filename="intro"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.mimetype == "audio/wav"
        assert 'filename=intro.wav' in resp.headers["Content-Disposition"]
        body = resp.get_data()
        assert body[:4] == b"RIFF"
        assert struct.unpack_from("<I", body, 40)[0] == 2000 * 4

    def test_millisecond_fields(self, client, stereo_wav) -> None:
        resp = client.post(
            "/trim",
            data=_form(stereo_wav, start="0", end="1500"),
            content_type="multipart/form-data",
        )
        # 1500 ms clamps to the 1 s track
        assert resp.status_code == 200
        assert struct.unpack_from("<I", resp.get_data(), 40)[0] == 8000 * 4

    def test_name_defaults_to_upload_name(self, client, stereo_wav) -> None:
        resp = client.post(
            "/trim", data=_form(stereo_wav, upload_name="../../take.flac"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert "filename=take.wav" in resp.headers["Content-Disposition"]

    def test_octet_stream_part_is_trimmed(self, client, stereo_wav) -> None:
        resp = client.post(
            "/trim",
            data=_form(stereo_wav, mime="application/octet-stream", start="0", end="0.5"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert struct.unpack_from("<I", resp.get_data(), 40)[0] == 4000 * 4

    def test_non_audio_part_type_is_415(self, client, stereo_wav) -> None:
        resp = client.post(
            "/trim", data=_form(stereo_wav, mime="image/png"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 415

    def test_missing_file_is_400(self, client) -> None:
        resp = client.post("/trim", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400

    def test_empty_file_is_400(self, client) -> None:
        resp = client.post("/trim", data=_form(b""), content_type="multipart/form-data")
        assert resp.status_code == 400
        assert "Empty" in resp.get_json()["error"]

    def test_unknown_magic_bytes_is_415(self, client) -> None:
        resp = client.post("/trim", data=_form(b"MZ\x90\x00 not audio"), content_type="multipart/form-data")
        assert resp.status_code == 415

    def test_corrupt_audio_is_415(self, client) -> None:
        resp = client.post(
            "/trim", data=_form(b"RIFF\x10\x00\x00\x00WAVEjunkjunk"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 415

    def test_non_numeric_range_is_400(self, client, stereo_wav) -> None:
        resp = client.post(
            "/trim", data=_form(stereo_wav, start="soon"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_empty_selection_is_400(self, client, stereo_wav) -> None:
        resp = client.post(
            "/trim", data=_form(stereo_wav, start="5", end="5"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
        assert "empty" in resp.get_json()["error"]

    def test_upload_forwards_artifact(self, client, stereo_wav, monkeypatch) -> None:
        uploader = FakeUploader()
        monkeypatch.setattr(server, "get_uploader", lambda: uploader)
        resp = client.post(
            "/trim",
            data=_form(stereo_wav, start="0", end="0.5", filename="clip", upload="true"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        assert resp.get_json() == {"message": "archivo subido", "name": "clip.wav"}
        assert uploader.artifacts[0].content[:4] == b"RIFF"

    def test_upload_failure_is_502(self, client, stereo_wav, monkeypatch) -> None:
        uploader = FakeUploader(error=UploadError("ya existe", 409))
        monkeypatch.setattr(server, "get_uploader", lambda: uploader)
        resp = client.post(
            "/trim", data=_form(stereo_wav, upload="true"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 502
        assert "ya existe" in resp.get_json()["error"]

    def test_get_not_allowed(self, client) -> None:
        assert client.get("/trim").status_code == 405


class TestSecurity:
    """Headers and request helpers."""

    def test_security_headers_present(self, client) -> None:
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"

    def test_sanitize_strips_paths_and_symbols(self) -> None:
        assert server._sanitize_filename("../../etc/pa$$wd.mp3") == "pawd.mp3"
        assert server._sanitize_filename("a..b.wav") == "a.b.wav"

    def test_parse_time(self) -> None:
        assert server._parse_time(None) is None
        assert server._parse_time("  ") is None
        assert server._parse_time("2.5") == 2.5
        with pytest.raises(ValueError):
            server._parse_time("abc")
