class TourDataError(Exception):
    pass


class UnknownEntityError(TourDataError, LookupError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"Unknown {kind}: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class IncompleteHistoryError(TourDataError):
    pass
