"""
Errores de dominio del subsistema de push.
- ValidationError: entrada de registro/envío mal formada (-> 400).
- StoreFailure: MongoDB no disponible en alta/listado/baja (-> 500).
Los fallos de entrega NO son excepciones: se representan como DeliveryOutcome.
"""


class PushError(Exception):
    """Base de los errores del subsistema de push."""


class ValidationError(PushError):
    pass


class StoreFailure(PushError):
    pass
