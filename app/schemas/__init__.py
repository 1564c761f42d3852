from app.schemas.auth import (
    KYCRequest,
    LoginRequest,
    RegisterRequest,
    ResendOTPRequest,
    UserResponse,
    VerifyEmailRequest,
    VerifyPhoneRequest,
)
from app.schemas.booking import CheckoutRequest, CheckoutResponse, VerifyPaymentRequest, VerifyPaymentResponse
from app.schemas.hoarding import HoardingCreate, HoardingResponse
