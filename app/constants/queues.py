QUEUE_EMAIL_INVOICE = "email_invoice"
QUEUE_EMAIL_PAYMENT_SUCCESS = "email_payment_success"
# declared but not consumed yet
QUEUE_GENERATE_PDF = "generate_pdf"

ALL_QUEUES = (QUEUE_EMAIL_INVOICE, QUEUE_EMAIL_PAYMENT_SUCCESS, QUEUE_GENERATE_PDF)

# unconsumed jobs older than an hour are dropped by the broker
MESSAGE_TTL_MS = 60 * 60 * 1000

JOB_TYPE_INVOICE = "invoice"
JOB_TYPE_PAYMENT_SUCCESS = "payment_success"
