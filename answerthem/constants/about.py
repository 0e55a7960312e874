"""Static metadata describing AnswerThem."""

APP_NAME = "AnswerThem"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "AnswerThem bundles a dashboard for the @answerthembot Twitter auto-reply bot "
    "with a relationship quiz service. The bot picks up mentions, drafts a reply in one "
    "of four moods and posts it; the quiz side lets people build quizzes, invite friends "
    "by code and compare scores."
)
BOT_DESCRIPTION = "Ready to respond with wit & roasts"
