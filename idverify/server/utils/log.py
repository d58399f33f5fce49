import logging


class CustomFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, "structured_data"):
            # Override message with extra info
            record.msg = "%s %s" % (
                self._join_extra(record.structured_data),
                record.msg
            )
            del record.structured_data
        return super().format(record)

    @staticmethod
    def _join_extra(extra: dict) -> str:
        return "[%s]" % ", ".join([
            '%s:%s' % (key, value)
            for (key, value) in extra.items()
        ])


def structured(**kwargs) -> dict:
    """build the `extra` argument of a logging call, e.g. `logger.info("...", extra=structured(user_id=uid))`"""
    return {"structured_data": kwargs}
