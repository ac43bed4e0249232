"""Curated holiday data, indexed by year."""

from typing import Dict, List

from .entities import Holiday, HolidayCategory


MAINLAND = HolidayCategory.MAINLAND
REGIONAL = HolidayCategory.REGIONAL
WESTERN = HolidayCategory.WESTERN
TRADITIONAL = HolidayCategory.TRADITIONAL


def _entries(category: HolidayCategory, rows, is_adjusted_workday: bool = False) -> List[Holiday]:
    return [
        Holiday(date=day, name=name, category=category, is_adjusted_workday=is_adjusted_workday)
        for day, name in rows
    ]


MAINLAND_HOLIDAYS_2025 = _entries(MAINLAND, [
    ('2025-01-01', '元旦'),
    ('2025-01-28', '春节除夕'),
    ('2025-01-29', '春节初一'),
    ('2025-01-30', '春节初二'),
    ('2025-01-31', '春节初三'),
    ('2025-02-01', '春节初四'),
    ('2025-02-02', '春节初五'),
    ('2025-02-03', '春节初六'),
    ('2025-04-05', '清明节'),
    ('2025-05-01', '劳动节'),
    ('2025-05-02', '劳动节假期'),
    ('2025-05-03', '劳动节假期'),
    ('2025-05-31', '端午节'),
    ('2025-10-06', '中秋节'),
    ('2025-10-01', '国庆节'),
    ('2025-10-02', '国庆假期'),
    ('2025-10-03', '国庆假期'),
    ('2025-10-04', '国庆假期'),
    ('2025-10-05', '国庆假期'),
    ('2025-10-07', '国庆假期'),
    ('2025-10-08', '国庆假期'),
])

# Hong Kong public holidays
REGIONAL_HOLIDAYS_2025 = _entries(REGIONAL, [
    ('2025-01-01', '元旦'),
    ('2025-01-29', '农历新年初一'),
    ('2025-01-30', '农历新年初二'),
    ('2025-01-31', '农历新年初三'),
    ('2025-04-05', '清明节'),
    ('2025-04-18', '耶稣受难节'),
    ('2025-04-19', '耶稣受难节翌日'),
    ('2025-04-21', '复活节星期一'),
    ('2025-05-01', '劳动节'),
    ('2025-05-13', '佛诞'),
    ('2025-05-31', '端午节'),
    ('2025-07-01', '香港特别行政区成立纪念日'),
    ('2025-09-18', '中秋节翌日'),
    ('2025-10-01', '国庆日'),
    ('2025-10-07', '重阳节'),
    ('2025-12-25', '圣诞节'),
    ('2025-12-26', '节礼日'),
])

WESTERN_HOLIDAYS_2025 = _entries(WESTERN, [
    ('2025-01-01', "New Year's Day"),
    ('2025-02-14', "Valentine's Day"),
    ('2025-03-17', "St. Patrick's Day"),
    ('2025-04-20', 'Easter Sunday'),
    ('2025-05-11', "Mother's Day"),
    ('2025-06-15', "Father's Day"),
    ('2025-07-04', 'Independence Day (US)'),
    ('2025-10-31', 'Halloween'),
    ('2025-11-27', 'Thanksgiving (US)'),
    ('2025-12-24', 'Christmas Eve'),
    ('2025-12-25', 'Christmas Day'),
    ('2025-12-31', "New Year's Eve"),
])

# Lunar-calendar festivals
TRADITIONAL_HOLIDAYS_2025 = _entries(TRADITIONAL, [
    ('2025-02-12', '元宵节'),
    ('2025-08-29', '七夕节'),
    ('2025-09-17', '中秋节'),
    ('2025-10-07', '重阳节'),
    ('2025-12-22', '冬至'),
])

# Weekends worked to compensate for mid-week holidays
WORKDAYS_2025 = _entries(MAINLAND, [
    ('2025-01-26', '春节调休'),
    ('2025-02-08', '春节调休'),
    ('2025-04-27', '劳动节调休'),
    ('2025-09-28', '国庆节调休'),
    ('2025-10-11', '国庆节调休'),
], is_adjusted_workday=True)

MAINLAND_HOLIDAYS_2026 = _entries(MAINLAND, [
    ('2026-01-01', '元旦'),
    ('2026-02-17', '春节除夕'),
    ('2026-02-18', '春节初一'),
    ('2026-02-19', '春节初二'),
    ('2026-02-20', '春节初三'),
    ('2026-02-21', '春节初四'),
    ('2026-02-22', '春节初五'),
    ('2026-02-23', '春节初六'),
    ('2026-04-05', '清明节'),
    ('2026-05-01', '劳动节'),
    ('2026-05-02', '劳动节假期'),
    ('2026-05-03', '劳动节假期'),
    ('2026-06-20', '端午节'),
    ('2026-09-27', '中秋节'),
    ('2026-10-01', '国庆节'),
    ('2026-10-02', '国庆假期'),
    ('2026-10-03', '国庆假期'),
    ('2026-10-04', '国庆假期'),
    ('2026-10-05', '国庆假期'),
    ('2026-10-06', '国庆假期'),
    ('2026-10-07', '国庆假期'),
    ('2026-10-08', '国庆假期'),
])

HOLIDAYS_BY_YEAR: Dict[int, List[Holiday]] = {
    2025: (
        MAINLAND_HOLIDAYS_2025
        + REGIONAL_HOLIDAYS_2025
        + WESTERN_HOLIDAYS_2025
        + TRADITIONAL_HOLIDAYS_2025
        + WORKDAYS_2025
    ),
    2026: list(MAINLAND_HOLIDAYS_2026),
}

# (month, day, name) of holidays that fall on the same date every year
FIXED_WESTERN_HOLIDAYS = [
    (1, 1, "New Year's Day"),
    (2, 14, "Valentine's Day"),
    (3, 17, "St. Patrick's Day"),
    (7, 4, 'Independence Day (US)'),
    (10, 31, 'Halloween'),
    (12, 24, 'Christmas Eve'),
    (12, 25, 'Christmas Day'),
    (12, 31, "New Year's Eve"),
]


class HolidayCatalog:
    """Year-indexed source of code-defined holidays."""

    @staticmethod
    def generate_western_holidays(year: int) -> List[Holiday]:
        return [
            Holiday(date=f"{year:04d}-{month:02d}-{day:02d}", name=name, category=WESTERN)
            for month, day, name in FIXED_WESTERN_HOLIDAYS
        ]

    @classmethod
    def holidays_for_year(cls, year: int) -> List[Holiday]:
        """Curated holidays for ``year``, or the fixed Western set when none are curated."""
        curated = HOLIDAYS_BY_YEAR.get(year)
        if not curated:
            return cls.generate_western_holidays(year)
        return list(curated)

    @staticmethod
    def curated_years() -> List[int]:
        return sorted(year for year, entries in HOLIDAYS_BY_YEAR.items() if entries)
