"""Constants shared by the sharing services and the notification worker."""

# Topic every sharing event is published to
EMAIL_TOPIC = "email_topic"

DEFAULT_CONSUMER_GROUP = "email-notifications"

# Public share links stay redeemable for this many days
SHARE_VALIDITY_DAYS = 7

# Upper bound for the free-text message on an access request
ACCESS_REQUEST_MESSAGE_MAX_LENGTH = 500

# Public share tokens are 128 random bits rendered as hex
SHARE_TOKEN_BYTES = 16

# Event ids a consumer remembers to drop duplicate deliveries
CONSUMER_DEDUPE_WINDOW = 10000
