"""Ошибки предметной области."""


class OrderError(Exception):
    """Базовая ошибка работы с заказами."""

    message = "Erreur serveur"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(OrderError):
    """Неполные или некорректные данные заказа (исправимо клиентом)."""

    message = "Données incomplètes"


class NotFoundError(OrderError):
    message = "Commande non trouvée"


class InvalidStatusError(OrderError):
    message = "Statut inconnu"


class StoreError(OrderError):
    """Сбой хранилища. Детали только в логах."""

    message = "Erreur serveur"
