# storage/errors.py


class PersistenceError(Exception):
    """
    Falla al escribir en la base. El mensaje es corto y no expone detalles
    internos (SQL, rutas); la excepción original queda encadenada en __cause__.
    """
