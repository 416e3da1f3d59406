import datetime as _dt

from dateutil import tz


def tz_buenos_aires() -> _dt.tzinfo:
    return tz.gettz("America/Argentina/Buenos_Aires")
