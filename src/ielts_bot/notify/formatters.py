"""
Message formatters for Telegram notifications.

Formats exam date changes, errors and command replies into
Telegram Markdown messages (in Turkish, like the monitored page).
"""

from datetime import date, datetime, timezone
from typing import Optional

from dateutil.tz import gettz

from ielts_bot.models import PersistedState, ScrapedSnapshot
from ielts_bot.scrapers.base import parse_turkish_date

# Entity characters of Telegram's legacy Markdown parse mode
MARKDOWN_SPECIAL_CHARS = "_*`["


def escape_markdown(text: str) -> str:
    """Backslash-escape Markdown entity characters in free text."""
    for char in MARKDOWN_SPECIAL_CHARS:
        text = text.replace(char, "\\" + char)
    return text


class MessageFormatter:
    """
    Formats notification content for Telegram messages.

    Args:
        target_url: Monitored page, linked from change notifications
        check_interval: Minutes between checks, shown in help texts
        tz_name: Timezone used for displayed timestamps
    """

    # Maximum length for free-form error text inside a message
    MAX_ERROR_LENGTH = 500

    def __init__(self, target_url: str, check_interval: int, tz_name: str = "Europe/Istanbul"):
        self.target_url = target_url
        self.check_interval = check_interval
        self.tz = gettz(tz_name) or timezone.utc

    @staticmethod
    def _truncate(text: str, max_length: int = 500) -> str:
        """Truncate text with ellipsis if too long."""
        if len(text) <= max_length:
            return text
        return text[:max_length - 3].rsplit(" ", 1)[0] + "..."

    def _format_datetime(self, dt: Optional[datetime] = None) -> str:
        """Format a timestamp in the configured timezone, tr-TR style."""
        if dt is None:
            dt = datetime.now(timezone.utc)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(self.tz).strftime("%d.%m.%Y %H:%M:%S")

    @staticmethod
    def _countdown(exam_date: str, today: Optional[date] = None) -> str:
        """Days until the exam, or an empty string if the date is unparseable."""
        parsed = parse_turkish_date(exam_date)
        if parsed is None:
            return ""

        days_until = (parsed - (today or date.today())).days
        if days_until < 0:
            return "(geçti)"
        if days_until == 0:
            return "🔴 BUGÜN!"
        if days_until == 1:
            return "🟠 YARIN!"
        return f"({days_until} gün kaldı)"

    def format_date_change(
        self,
        previous: PersistedState,
        current: ScrapedSnapshot,
        today: Optional[date] = None,
    ) -> str:
        """
        Format a date change notification.

        Args:
            previous: State before the change (holds the old dates)
            current: Newly scraped dates
            today: Reference day for the countdown, defaults to today

        Returns:
            str: Formatted message string
        """
        countdown = self._countdown(current.exam_date, today)

        lines = [
            "🎓 *IELTS Sınav Tarihi Güncellendi!*",
            "",
            f"📅 *Yeni Sınav Tarihi:* {current.exam_date} {countdown}".rstrip(),
            f"⏰ *Başvuru Son Tarihi:* {current.application_deadline}",
        ]

        if previous.last_exam_date != current.exam_date and previous.last_exam_date:
            lines.append(f"↩️ _Önceki sınav tarihi:_ {previous.last_exam_date}")
        if (
            previous.last_application_deadline != current.application_deadline
            and previous.last_application_deadline
        ):
            lines.append(f"↩️ _Önceki son başvuru:_ {previous.last_application_deadline}")

        lines.extend([
            "",
            f"🔗 [Sınav sayfasını görüntüle]({self.target_url})",
            "",
            "⚠️ *Önemli:* Sınavdan en az 21 gün önce gerekli belgeleri yüklemeniz gerekmektedir.",
            "",
            "Bot tarafından otomatik olarak gönderilmiştir. 🤖",
        ])

        return "\n".join(lines)

    def format_error(self, error_message: str, when: Optional[datetime] = None) -> str:
        """
        Format an error notification.

        Args:
            error_message: The error to report
            when: Time of the error, defaults to now

        Returns:
            str: Formatted error message
        """
        cause = escape_markdown(self._truncate(error_message, self.MAX_ERROR_LENGTH))
        return (
            "⚠️ *Bot Hatası*\n\n"
            f"Bir hata oluştu: {cause}\n\n"
            "Bot çalışmaya devam edecek, ancak bu hatayı kontrol etmeniz gerekebilir.\n\n"
            f"🕐 Hata zamanı: {self._format_datetime(when)}"
        )

    def format_test(self, when: Optional[datetime] = None) -> str:
        """Format the liveness message sent at startup."""
        return (
            "🧪 *Test Mesajı*\n\n"
            "Bot çalışıyor ve mesaj gönderebiliyor!\n\n"
            f"🕐 Test zamanı: {self._format_datetime(when)}"
        )

    # Command replies

    def format_welcome(self, is_new: bool, subscriber_count: int) -> str:
        lines = [
            "🎓 *Bilkent IELTS Exam Date Monitor*",
            "",
            "Bu bot, Bilkent Üniversitesi IELTS sınav tarihlerini takip eder "
            "ve değişiklik olduğunda sizi bilgilendirir.",
            "",
            "📅 *Mevcut Özellikler:*",
            f"• Her {self.check_interval} dakikada bir sınav tarihlerini kontrol eder",
            "• Tarih değişikliklerinde otomatik bildirim gönderir",
            "• Hem sınav tarihini hem de başvuru son tarihini takip eder",
            "",
            "🔧 *Komutlar:*",
            "/status - Bot durumunu kontrol et",
            "/unsubscribe - Bildirimleri durdur",
            "/subscribe - Bildirimleri tekrar başlat",
            "/help - Bu yardım mesajını göster",
            "",
        ]

        if is_new:
            lines.append("✅ *Başarıyla kayıt oldunuz!*")
        else:
            lines.append("ℹ️ Zaten kayıtlısınız.")
        lines.extend([
            f"📊 Toplam abone sayısı: {subscriber_count}",
            "",
            "Bot aktif ve çalışıyor! 🚀",
        ])

        return "\n".join(lines)

    def format_status(
        self,
        running: bool,
        subscriber_count: int,
        is_subscribed: bool,
        state: PersistedState,
        now: Optional[datetime] = None,
    ) -> str:
        lines = [
            "📊 *Bot Durumu*",
            "",
            "✅ Bot aktif ve çalışıyor" if running else "⏸️ Bot şu anda durdurulmuş",
            f"🕐 Şu an: {self._format_datetime(now)}",
        ]

        if state.last_notification_sent is not None:
            lines.append(f"🔄 Son başarılı kontrol: {self._format_datetime(state.last_notification_sent)}")
        if state.last_exam_date:
            lines.append(f"📅 Bilinen sınav tarihi: {state.last_exam_date}")
            lines.append(f"⏰ Bilinen son başvuru: {state.last_application_deadline}")

        lines.extend([
            f"🎯 Hedef URL: {self.target_url}",
            f"⏰ Kontrol aralığı: {self.check_interval} dakika",
            f"👥 Toplam abone sayısı: {subscriber_count}",
            "✅ Siz abonesiniz" if is_subscribed else "❌ Siz abone değilsiniz",
            "",
            "Bot düzenli olarak sınav tarihlerini kontrol ediyor. Değişiklik olduğunda "
            "abone olan kullanıcılara bildirim gönderecek.",
        ])

        return "\n".join(lines)

    @staticmethod
    def format_subscribed(is_new: bool, subscriber_count: int) -> str:
        if is_new:
            return (
                "✅ *Bildirimler aktif edildi*\n\n"
                "IELTS sınav tarihi güncellemeleri alacaksınız.\n\n"
                f"📊 Toplam abone sayısı: {subscriber_count}"
            )
        return (
            "ℹ️ *Zaten abonesiniz*\n\n"
            "IELTS sınav tarihi güncellemeleri almaya devam ediyorsunuz.\n\n"
            f"📊 Toplam abone sayısı: {subscriber_count}"
        )

    @staticmethod
    def format_unsubscribed(was_removed: bool, subscriber_count: int) -> str:
        if was_removed:
            return (
                "❌ *Bildirimler durduruldu*\n\n"
                "Artık IELTS sınav tarihi güncellemeleri almayacaksınız.\n\n"
                f"📊 Kalan abone sayısı: {subscriber_count}\n\n"
                "Bildirimleri tekrar almak için /subscribe komutunu kullanabilirsiniz."
            )
        return (
            "ℹ️ *Zaten abone değilsiniz*\n\n"
            "Bildirimleri almak için /start veya /subscribe komutunu kullanabilirsiniz."
        )

    def format_help(self) -> str:
        return "\n".join([
            "❓ *Yardım*",
            "",
            "Bu bot Bilkent Üniversitesi IELTS sınav tarihlerini takip eder.",
            "",
            "📋 *Nasıl Çalışır:*",
            f"1. Bot her {self.check_interval} dakikada bir web sitesini kontrol eder",
            "2. Sınav tarihi veya başvuru son tarihi değişirse bildirim gönderir",
            "3. Bildirimler otomatik olarak tüm kayıtlı kullanıcılara gönderilir",
            "",
            "🔧 *Komutlar:*",
            "/start - Botu başlat ve otomatik olarak abone ol",
            "/status - Bot durumunu kontrol et",
            "/subscribe - Bildirimleri aktif et",
            "/unsubscribe - Bildirimleri durdur",
            "/help - Bu yardım mesajını göster",
        ])
