PROVIDER_VNPAY = "vnpay"
PROVIDER_MOMO = "momo"
PROVIDER_ZALOPAY = "zalopay"
PROVIDER_BANKING = "banking"

EVENT_SOURCE_WEBHOOK = "webhook"
EVENT_SOURCE_QUERY = "query"
EVENT_SOURCE_MANUAL = "manual"
