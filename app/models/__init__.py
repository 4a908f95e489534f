from app.models.user import User
from app.models.visa import Visa, VisaOption
from app.models.purchase import Purchase
from app.models.payment import Payment
from app.models.activity import ActivityLog
from app.models.auth_tokens import OTPCode, PasswordResetToken

# add ALL models here
