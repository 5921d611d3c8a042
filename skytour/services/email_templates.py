from dataclasses import dataclass
from datetime import date

from skytour.services.email_service import OutgoingEmail

BRAND = "PrivateSky Tour"


@dataclass
class BookingFacts:
    to: str
    customer_name: str
    course_name: str
    flight_date: date
    flight_time: str
    pax: int
    booking_number: str
    heliport_name: str = ""
    heliport_address: str = ""
    google_map_url: str | None = None
    mypage_url: str | None = None


def format_date_ja(d: date) -> str:
    return f"{d.year}年{d.month}月{d.day}日"


def _heliport_block(f: BookingFacts) -> str:
    lines = []
    if f.heliport_name:
        lines.append(f"集合場所: {f.heliport_name}")
    if f.heliport_address:
        lines.append(f"住所: {f.heliport_address}")
    if f.google_map_url:
        lines.append(f"地図: {f.google_map_url}")
    return "\n".join(lines)


def render_thank_you(f: BookingFacts) -> OutgoingEmail:
    body = (
        f"{f.customer_name} 様\n\n"
        f"{format_date_ja(f.flight_date)}は{BRAND}「{f.course_name}」にご搭乗いただき、誠にありがとうございました。\n"
        f"予約番号: {f.booking_number}\n\n"
        "またのご利用を心よりお待ちしております。\n"
    )
    if f.mypage_url:
        body += f"\nマイページ: {f.mypage_url}\n"
    return OutgoingEmail(to=f.to, subject=f"【{BRAND}】ご搭乗ありがとうございました", body=body)


def render_reminder(f: BookingFacts, days_before: int) -> OutgoingEmail:
    when = "明日" if days_before == 1 else f"{days_before}日後"
    body = (
        f"{f.customer_name} 様\n\n"
        f"ご予約のフライトは{when}です。\n\n"
        f"予約番号: {f.booking_number}\n"
        f"コース: {f.course_name}\n"
        f"日時: {format_date_ja(f.flight_date)} {f.flight_time}\n"
        f"人数: {f.pax}名\n"
    )
    block = _heliport_block(f)
    if block:
        body += "\n" + block + "\n"
    body += "\n出発時刻の30分前までに受付をお済ませください。\n"
    subject = f"【{BRAND}】{'明日のフライトのご案内' if days_before == 1 else 'フライト3日前のご案内'}"
    return OutgoingEmail(to=f.to, subject=subject, body=body)
