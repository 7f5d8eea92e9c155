from oura_trends.schemas.daily_record import BodyComposition, DailyRecord, Point

__all__ = ["BodyComposition", "DailyRecord", "Point"]
