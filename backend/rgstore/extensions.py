# Overview: Flask extension instances for database and migrations, plus the JSON provider.

from decimal import Decimal

from flask.json.provider import DefaultJSONProvider
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


class DecimalJSONProvider(DefaultJSONProvider):
    """
    Money travels as exact decimals.

    Incoming JSON numbers with a fraction are parsed straight into Decimal,
    and Decimal values are written back out as JSON numbers.
    """

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            # at most 2 places, so the float repr is the decimal text
            return float(o)
        return DefaultJSONProvider.default(o)

    def loads(self, s, **kwargs):
        kwargs.setdefault("parse_float", Decimal)
        return super().loads(s, **kwargs)
