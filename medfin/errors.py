class MedfinError(Exception):
    """Base class for errors surfaced verbatim to the user."""


class EntryNotFound(MedfinError):
    def __init__(self, entry_id: str):
        super().__init__(f"Registro {entry_id} não encontrado")
        self.entry_id = entry_id


class PaywallError(MedfinError):
    def __init__(self, feature: str):
        super().__init__(f"Recurso disponível apenas no plano PRO: {feature}")
        self.feature = feature
