'''
Helpers shared by the test modules.
'''
from etuition_backend.database import models as db_models
from etuition_backend.models.payment import CheckoutSessionInfo
from etuition_backend.services.security import JWTHandler
from tests.constants import TEST_CHECKOUT_SESSION_ID, TEST_STUDENT_EMAIL


def auth_headers_for_user(user: db_models.Users) -> dict:
    """Creates a JWT token for the given user and returns auth headers."""
    token = JWTHandler.create_access_token(subject=user.email)
    return {"Authorization": f"Bearer {token}"}


def paid_session_for(
    application: db_models.Applications,
    payment_intent_id: str,
    session_id: str = TEST_CHECKOUT_SESSION_ID
) -> CheckoutSessionInfo:
    """Builds what the gateway reports for a completed checkout of `application`."""
    return CheckoutSessionInfo(
        session_id=session_id,
        payment_status="paid",
        payment_intent_id=payment_intent_id,
        amount_total=550000,
        currency="usd",
        customer_email=TEST_STUDENT_EMAIL,
        metadata={
            "applicationId": str(application.id),
            "tuitionId": str(application.tuition_id),
            "studentEmail": TEST_STUDENT_EMAIL,
            "tutorEmail": application.tutor_email,
            "tutorName": application.tutor_name,
            "tuitionName": "Physics",
        },
    )
