class LayoutError(Exception):
    pass


class InputError(LayoutError):
    pass


class PlacementError(LayoutError):
    pass
