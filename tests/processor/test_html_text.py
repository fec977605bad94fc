# tests/processor/test_html_text.py
from novelbridge.processor.epub.html_text import (
    decode_html, extract_chapter_title, extract_heading, extract_text,
)


class TestExtractText:

    def test_une_textos_con_un_espacio(self):
        html = "<html><body><h1> Título </h1><p>Primera   línea</p><p>Segunda</p></body></html>"
        assert extract_text(html) == "Título Primera   línea Segunda"

    def test_ignora_comentarios(self):
        html = "<p>visible</p><!-- oculto --><p>también</p>"
        assert extract_text(html) == "visible también"

    def test_acepta_bytes(self):
        assert extract_text("<p>ñandú</p>".encode("utf-8")) == "ñandú"

    def test_vacio(self):
        assert extract_text("") == ""
        assert extract_text("   ") == ""


class TestExtractHeading:

    def test_prefiere_h1(self):
        assert extract_heading("<h2>Segundo</h2><h1>Primero</h1>") == "Primero"

    def test_cae_a_h2(self):
        assert extract_heading("<p>x</p><h2> Capítulo 3 </h2>") == "Capítulo 3"

    def test_sin_titulos(self):
        assert extract_heading("<p>solo texto</p>") is None

    def test_h1_vacio_cae_a_h2(self):
        assert extract_heading("<h1> </h1><h2>Otro</h2>") == "Otro"

    def test_titulo_por_defecto(self):
        assert extract_chapter_title("<p>nada</p>", 7) == "Chapter 7"


class TestDecodeHtml:

    def test_utf8(self):
        assert decode_html("café".encode("utf-8")) == "café"

    def test_fallback_latin1(self):
        assert decode_html("café".encode("latin-1")) == "café"
