# tests/media/test_uploader.py
import pytest

from conftest import PNG_BYTES, image_bytes
from novelbridge.media.uploader import LocalMediaUploader, MediaUploadError, identify_image


class TestIdentify:

    @pytest.mark.parametrize("image_format, mime, ext", [
        ("PNG",  "image/png",  ".png"),
        ("JPEG", "image/jpeg", ".jpg"),
        ("GIF",  "image/gif",  ".gif"),
    ])
    def test_tipos_conocidos(self, image_format, mime, ext):
        assert identify_image("cover", image_bytes(image_format)) == (mime, ext)

    def test_desconocido(self):
        with pytest.raises(MediaUploadError):
            identify_image("cover", b"%PDF-1.7")

    def test_solo_magic_bytes_no_alcanza(self):
        with pytest.raises(MediaUploadError):
            identify_image("cover", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)

    def test_png_truncado(self):
        with pytest.raises(MediaUploadError):
            identify_image("cover", PNG_BYTES[:-12])

    def test_formato_legible_pero_no_soportado(self):
        with pytest.raises(MediaUploadError, match="BMP"):
            identify_image("cover", image_bytes("BMP"))


class TestLocalMediaUploader:

    def test_guarda_y_devuelve_url(self, tmp_path):
        uploaded = LocalMediaUploader(media_dir=str(tmp_path)).upload("cover", PNG_BYTES)

        path = tmp_path / f"{uploaded.media_id}.png"
        assert path.read_bytes() == PNG_BYTES
        assert uploaded.url == path.resolve().as_uri()
        assert uploaded.mime_type == "image/png"
        assert uploaded.size == len(PNG_BYTES)

    def test_vacio(self, tmp_path):
        with pytest.raises(MediaUploadError):
            LocalMediaUploader(media_dir=str(tmp_path)).upload("cover", b"")

    def test_no_es_imagen(self, tmp_path):
        with pytest.raises(MediaUploadError):
            LocalMediaUploader(media_dir=str(tmp_path)).upload("cover", b"<html></html>")
        assert list(tmp_path.iterdir()) == []

    def test_imagen_corrupta_no_se_guarda(self, tmp_path):
        with pytest.raises(MediaUploadError):
            LocalMediaUploader(media_dir=str(tmp_path)).upload("cover", PNG_BYTES[: len(PNG_BYTES) // 2])
        assert list(tmp_path.iterdir()) == []

    def test_jpeg(self, tmp_path):
        uploaded = LocalMediaUploader(media_dir=str(tmp_path)).upload("cover", image_bytes("JPEG"))
        assert uploaded.mime_type == "image/jpeg"
        assert (tmp_path / f"{uploaded.media_id}.jpg").exists()

    def test_directorio_desde_el_entorno(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NOVELBRIDGE_MEDIA_DIR", str(tmp_path / "env-media"))
        uploaded = LocalMediaUploader().upload("cover", PNG_BYTES)
        assert (tmp_path / "env-media" / f"{uploaded.media_id}.png").exists()
