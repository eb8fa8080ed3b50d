"""Exception types shared by the Health Pet modules."""


class ParseError(ValueError):
    """Malformed animation source, config document or duration string."""


class ScheduleError(ValueError):
    """A schedule that has no recurrence instances."""


class AnimationError(LookupError):
    """No frames could be resolved for an animation key."""
