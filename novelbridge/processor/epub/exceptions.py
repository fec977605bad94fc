"""
Excepciones del pipeline de ingestión EPUB.

Todas heredan de EpubError para que el CLI y los servicios puedan
capturar "este archivo no se puede procesar" con un único except.
"""


class EpubError(Exception):
    """Base de todos los errores de parseo/transformación de un EPUB."""
    pass


class ContainerCorruptError(EpubError):
    """El blob no es un ZIP válido (o está vacío)."""
    pass


class EmptyContainerError(EpubError):
    """El ZIP abrió bien pero no contiene ningún archivo."""
    pass


class MissingRootfileError(EpubError):
    """No hay META-INF/container.xml o no declara ningún rootfile."""
    pass


class InvalidOPFError(EpubError):
    """El paquete OPF no es XML bien formado o no existe en el archivo."""

    def __init__(self, message: str, opf_path: str | None = None):
        super().__init__(message)
        self.opf_path = opf_path


class UnsupportedSourceFormatError(EpubError):
    """Ningún transformer registrado reconoce el EPUB."""
    pass


class TransformError(EpubError):
    """
    Fallo inesperado durante la transformación.
    Envuelve la excepción original para que un archivo malformado
    termine como "este upload falla" y no tumbe el proceso.
    """

    def __init__(self, message: str, source_type: str | None = None):
        super().__init__(message)
        self.source_type = source_type
