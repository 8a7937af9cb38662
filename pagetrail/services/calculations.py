"""Page/percentage conversions shared by the ledger.

Both directions truncate. Rounding would report 100% one page early
(299 of 300 pages must stay at 99%).
"""


def calculate_percentage(current_page: int, total_pages: int | None) -> int:
    if not total_pages or total_pages <= 0:
        return 0
    return (current_page * 100) // total_pages


def calculate_page_from_percentage(percentage: int, total_pages: int | None) -> int:
    if not total_pages or total_pages <= 0:
        return 0
    return (total_pages * percentage) // 100


def is_complete(percentage: int) -> bool:
    return percentage >= 100
