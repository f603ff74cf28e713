class SiteProfileError(Exception): ...


class ConfigError(SiteProfileError): ...


class RecordError(SiteProfileError): ...


class IrradianceError(SiteProfileError): ...


class IrradianceQuotaError(IrradianceError): ...


def require(
    condition: bool, message: str, exc: type[SiteProfileError] = SiteProfileError
):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
