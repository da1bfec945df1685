from datetime import datetime


def format_date_time(moment: datetime) -> str:
    return moment.astimezone().strftime("%Y-%m-%d %H:%M:%S %z (%A)")


def get_date_time() -> str:
    """Get the current local date and time."""
    return format_date_time(datetime.now())
