from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, APIRouter, HTTPException, Request, Query, status, Path, Depends
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from pymongo.database import Database

from logger import logger
from config.config import settings
from account.account_model import UserData
from account.authentication import authenticate, get_identity_provider
from account.authorization import require_admin, require_agent, require_user
from account.firebase_manager import FirebaseManager
from database.db_manager import DBManager, get_db
from payment.stripe_manager import StripeManager, get_stripe_manager
from utils.common_models import MessageResponse
from utils.exceptions import MarketplaceError

from account.account_actions import AccountActionsHandler
from account.account_actions_model import *
from property.property_actions import PropertyActionsHandler
from property.property_actions_model import *
from property.property_model import PropertyModel
from offer.offer_actions import OfferActionsHandler
from offer.offer_actions_model import *
from offer.offer_model import OfferModel
from payment.payment_actions import PaymentActionsHandler
from payment.payment_actions_model import *
from review.review_actions import ReviewActionsHandler
from review.review_actions_model import *
from review.review_model import ReviewModel
from wishlist.wishlist_actions import WishlistActionsHandler
from wishlist.wishlist_actions_model import *


@asynccontextmanager
async def lifespan(app: FastAPI):
    """The document store connection lives as long as the process"""
    db_manager = DBManager()
    db_manager.connect()
    app.state.db_manager = db_manager
    logger.info(f"[API] {settings.App.NAME} started")

    yield

    db_manager.close()
    logger.info(f"[API] {settings.App.NAME} shut down")


def get_payment_gateway() -> Optional[StripeManager]:
    return get_stripe_manager()


# Initialize FastAPI app
app = FastAPI(title=settings.App.NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.Authentication.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"[API] Request validation failed on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors()), "code": "VALIDATION_ERROR"}
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.exception(exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "code": "VALIDATION_ERROR"}
    )


@app.exception_handler(MarketplaceError)
async def marketplace_exception_handler(request: Request, exc: MarketplaceError):
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc.code} {exc.detail}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} refused: {exc.status_code} {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code, **exc.extra}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"[API] {request.method} {request.url.path}: {exc.status_code} {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server error", "code": "SERVER_ERROR"}
    )


@app.get("/")
async def read_root():
    return {"message": f"{settings.App.NAME} API is running"}


@app.get("/health")
def health(request: Request):
    db_manager: Optional[DBManager] = getattr(request.app.state, 'db_manager', None)
    if db_manager is None:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            content={"status": "unhealthy", "database": "not initialized"})
    health_status = db_manager.health_check()
    code = status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=health_status)


###########
# AUTH APIs
###########

auth_router = APIRouter(prefix="/auth", tags=["auth"])

@auth_router.post('/register', response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: Database = Depends(get_db),
    identity_provider: Optional[FirebaseManager] = Depends(get_identity_provider),
):
    return AccountActionsHandler(db, identity_provider=identity_provider).register(request=request)

@auth_router.post('/login', response_model=LoginResponse)
def login(
    request: LoginRequest,
    db: Database = Depends(get_db),
    identity_provider: Optional[FirebaseManager] = Depends(get_identity_provider),
):
    return AccountActionsHandler(db, identity_provider=identity_provider).login(request=request)

@auth_router.get('/me', response_model=MeResponse)
def me(db: Database = Depends(get_db), user_data: UserData = Depends(authenticate)):
    return AccountActionsHandler(db, user_data=user_data).me()

@auth_router.post('/logout', response_model=MessageResponse)
def logout(user_data: UserData = Depends(authenticate)):
    # Backend tokens are stateless; the client discards its copy
    logger.info(f"[AUTH] {user_data.email} logged out")
    return MessageResponse(message="Logout successful")


###########
# USER APIs
###########

user_router = APIRouter(prefix="/users", tags=["users"])

@user_router.get('/profile', response_model=ProfileResponse)
def get_profile(db: Database = Depends(get_db), user_data: UserData = Depends(authenticate)):
    return AccountActionsHandler(db, user_data=user_data).profile()

@user_router.patch('/profile', response_model=MessageResponse)
def update_profile(
    request: UpdateProfileRequest,
    db: Database = Depends(get_db),
    user_data: UserData = Depends(authenticate),
    identity_provider: Optional[FirebaseManager] = Depends(get_identity_provider),
):
    return AccountActionsHandler(db, user_data=user_data, identity_provider=identity_provider) \
        .update_profile(request=request)

@user_router.get('', response_model=List[UserSummary])
def list_users(db: Database = Depends(get_db), user_data: UserData = Depends(require_admin)):
    return AccountActionsHandler(db, user_data=user_data).list_users()

@user_router.patch('/make-admin/{uid}', response_model=RoleChangeResponse)
def make_admin(
    uid: str = Path(..., description="Uid of the user to promote"),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_admin),
):
    return AccountActionsHandler(db, user_data=user_data).make_admin(uid)

@user_router.patch('/make-agent/{uid}', response_model=RoleChangeResponse)
def make_agent(
    uid: str = Path(..., description="Uid of the user to promote"),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_admin),
):
    return AccountActionsHandler(db, user_data=user_data).make_agent(uid)

@user_router.patch('/mark-fraud/{uid}', response_model=RoleChangeResponse)
def mark_fraud(
    uid: str = Path(..., description="Uid of the agent to flag"),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_admin),
):
    return AccountActionsHandler(db, user_data=user_data).mark_fraud(uid)

@user_router.delete('/{uid}', response_model=DeleteUserResponse)
def delete_user(
    uid: str = Path(..., description="Uid of the user to delete"),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_admin),
    identity_provider: Optional[FirebaseManager] = Depends(get_identity_provider),
):
    return AccountActionsHandler(db, user_data=user_data, identity_provider=identity_provider).delete_user(uid)


###############
# PROPERTY APIs
###############

property_router = APIRouter(prefix="/properties", tags=["properties"])

@property_router.get('/advertisements', response_model=List[PropertyModel])
def advertised_properties(db: Database = Depends(get_db)):
    return PropertyActionsHandler(db).list_advertised()

@property_router.get('/search', response_model=List[PropertyModel])
def search_properties(location: Optional[str] = Query(None), db: Database = Depends(get_db)):
    return PropertyActionsHandler(db).search_by_location(location)

@property_router.get('/public', response_model=List[PropertyModel])
def public_properties(
    search: Optional[str] = Query(None, description="Case-insensitive location filter"),
    sort: Optional[str] = Query(None, description="priceAsc or priceDesc"),
    db: Database = Depends(get_db),
):
    return PropertyActionsHandler(db).list_public(search=search, sort=sort)

@property_router.get('', response_model=List[PropertyModel])
def verified_properties(
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(authenticate),
):
    return PropertyActionsHandler(db, user_data).list_public(search=search, sort=sort)

@property_router.get('/latest-advertised', response_model=List[PropertyModel])
def latest_advertised_properties(
    limit: Optional[int] = Query(None, ge=1),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(authenticate),
):
    return PropertyActionsHandler(db, user_data).list_latest_advertised(limit)

@property_router.get('/sorted', response_model=List[PropertyModel])
def sorted_properties(
    order: Optional[str] = Query(None, description="asc or desc"),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(authenticate),
):
    return PropertyActionsHandler(db, user_data).sorted_by_price(order)

@property_router.get('/agent/my-properties', response_model=MyPropertiesResponse)
def my_properties(db: Database = Depends(get_db), user_data: UserData = Depends(require_agent)):
    return PropertyActionsHandler(db, user_data).my_properties()

@property_router.get('/admin/all', response_model=List[PropertyModel])
def all_properties(db: Database = Depends(get_db), user_data: UserData = Depends(require_admin)):
    return PropertyActionsHandler(db, user_data).list_all()

@property_router.get('/admin/advertise', response_model=List[PropertyModel])
def admin_advertised_properties(db: Database = Depends(get_db), user_data: UserData = Depends(require_admin)):
    return PropertyActionsHandler(db, user_data).list_admin_advertised()

@property_router.patch('/admin/advertise/{property_id}', response_model=PropertyResponse)
def advertise_property(
    request: AdvertisePropertyRequest,
    property_id: str = Path(...),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_admin),
):
    return PropertyActionsHandler(db, user_data).advertise_property(property_id, request)

@property_router.patch('/verify/{property_id}', response_model=PropertyResponse)
def verify_property(
    request: VerifyPropertyRequest,
    property_id: str = Path(...),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_admin),
):
    return PropertyActionsHandler(db, user_data).verify_property(property_id, request)

@property_router.post('', response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
def add_property(
    request: CreatePropertyRequest,
    db: Database = Depends(get_db),
    user_data: UserData = Depends(authenticate),
):
    # Role and fraud checks happen in the handler to report their specific codes
    return PropertyActionsHandler(db, user_data).add_property(request)

@property_router.get('/{property_id}', response_model=PropertyModel)
def property_details(
    property_id: str = Path(..., description="String or ObjectId identifier"),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(authenticate),
):
    return PropertyActionsHandler(db, user_data).get_details(property_id)

@property_router.api_route('/{property_id}', methods=['PUT', 'PATCH'], response_model=PropertyResponse)
def update_property(
    request: UpdatePropertyRequest,
    property_id: str = Path(...),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_agent),
):
    return PropertyActionsHandler(db, user_data).update_property(property_id, request)

@property_router.delete('/{property_id}', response_model=DeletePropertyResponse)
def delete_property(
    property_id: str = Path(...),
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_agent),
):
    return PropertyActionsHandler(db, user_data).delete_property(property_id)


############
# OFFER APIs
############

offer_router = APIRouter(prefix="/offers", tags=["offers"])

@offer_router.post('', response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
def make_offer(request: CreateOfferRequest, db: Database = Depends(get_db),
               user_data: UserData = Depends(require_user)):
    return OfferActionsHandler(db, user_data).make_offer(request)

@offer_router.get('/my-offers', response_model=List[OfferModel])
def my_offers(db: Database = Depends(get_db), user_data: UserData = Depends(require_user)):
    return OfferActionsHandler(db, user_data).my_offers()

@offer_router.get('/my-bought-properties', response_model=BoughtPropertiesResponse)
def my_bought_properties(db: Database = Depends(get_db), user_data: UserData = Depends(require_user)):
    return OfferActionsHandler(db, user_data).my_bought_properties()

@offer_router.delete('/{offer_id}', response_model=MessageResponse)
def cancel_offer(offer_id: str = Path(...), db: Database = Depends(get_db),
                 user_data: UserData = Depends(require_user)):
    return OfferActionsHandler(db, user_data).cancel_offer(offer_id)

@offer_router.get('/agent/requested-properties', response_model=List[OfferModel])
def requested_offers(db: Database = Depends(get_db), user_data: UserData = Depends(require_agent)):
    return OfferActionsHandler(db, user_data).requested_offers()

@offer_router.get('/agent/sold-properties', response_model=List[OfferModel])
def sold_offers(db: Database = Depends(get_db), user_data: UserData = Depends(require_agent)):
    return OfferActionsHandler(db, user_data).sold_offers()

@offer_router.get('/agent/total-sold-amount', response_model=TotalSoldAmountResponse)
def total_sold_amount(db: Database = Depends(get_db), user_data: UserData = Depends(require_agent)):
    return OfferActionsHandler(db, user_data).total_sold_amount()

@offer_router.patch('/agent/accept/{offer_id}', response_model=OfferResponse)
def accept_offer(offer_id: str = Path(...), db: Database = Depends(get_db),
                 user_data: UserData = Depends(require_agent)):
    return OfferActionsHandler(db, user_data).accept_offer(offer_id)

@offer_router.patch('/agent/reject/{offer_id}', response_model=OfferResponse)
def reject_offer(offer_id: str = Path(...), db: Database = Depends(get_db),
                 user_data: UserData = Depends(require_agent)):
    return OfferActionsHandler(db, user_data).reject_offer(offer_id)

@offer_router.patch('/user/pay/{offer_id}', response_model=OfferResponse)
def mark_offer_bought(request: MarkOfferBoughtRequest, offer_id: str = Path(...),
                      db: Database = Depends(get_db), user_data: UserData = Depends(require_user)):
    return OfferActionsHandler(db, user_data).mark_bought(offer_id, request)


##############
# PAYMENT APIs
##############

payment_router = APIRouter(prefix="/payment", tags=["payment"])

@payment_router.post('/create-payment-intent', response_model=CreatePaymentIntentResponse)
def create_payment_intent(
    request: CreatePaymentIntentRequest,
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_user),
    gateway: Optional[StripeManager] = Depends(get_payment_gateway),
):
    return PaymentActionsHandler(db, user_data, gateway).create_payment_intent(request)

@payment_router.post('/confirm-payment', response_model=ConfirmPaymentResponse)
def confirm_payment(
    request: ConfirmPaymentRequest,
    db: Database = Depends(get_db),
    user_data: UserData = Depends(require_user),
    gateway: Optional[StripeManager] = Depends(get_payment_gateway),
):
    return PaymentActionsHandler(db, user_data, gateway).confirm_payment(request)


#############
# REVIEW APIs
#############

review_router = APIRouter(prefix="/reviews", tags=["reviews"])

@review_router.get('/property/{property_id}', response_model=List[ReviewModel])
def property_reviews(property_id: str = Path(...), db: Database = Depends(get_db)):
    return ReviewActionsHandler(db).reviews_for_property(property_id)

@review_router.get('/latest', response_model=List[ReviewModel])
def latest_reviews(limit: Optional[int] = Query(None, ge=1), db: Database = Depends(get_db)):
    return ReviewActionsHandler(db).latest_reviews(limit)

@review_router.get('/my-reviews', response_model=List[ReviewModel])
def my_reviews(db: Database = Depends(get_db), user_data: UserData = Depends(authenticate)):
    return ReviewActionsHandler(db, user_data).my_reviews()

@review_router.get('/admin/all', response_model=List[ReviewModel])
def all_reviews_admin(db: Database = Depends(get_db), user_data: UserData = Depends(require_admin)):
    return ReviewActionsHandler(db, user_data).all_reviews()

@review_router.get('', response_model=List[ReviewModel])
def all_reviews(db: Database = Depends(get_db), user_data: UserData = Depends(require_admin)):
    return ReviewActionsHandler(db, user_data).all_reviews()

@review_router.post('', response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def add_review(request: CreateReviewRequest, db: Database = Depends(get_db),
               user_data: UserData = Depends(require_user)):
    return ReviewActionsHandler(db, user_data).add_review(request)

@review_router.delete('/{review_id}', response_model=MessageResponse)
def delete_review(review_id: str = Path(...), db: Database = Depends(get_db),
                  user_data: UserData = Depends(authenticate)):
    return ReviewActionsHandler(db, user_data).delete_review(review_id)


###############
# WISHLIST APIs
###############

wishlist_router = APIRouter(prefix="/wishlist", tags=["wishlist"])

@wishlist_router.post('', response_model=WishlistResponse, status_code=status.HTTP_201_CREATED)
def add_to_wishlist(request: AddToWishlistRequest, db: Database = Depends(get_db),
                    user_data: UserData = Depends(authenticate)):
    return WishlistActionsHandler(db, user_data).add(request)

@wishlist_router.get('', response_model=List[WishlistItem])
def get_wishlist(db: Database = Depends(get_db), user_data: UserData = Depends(authenticate)):
    return WishlistActionsHandler(db, user_data).get_wishlist()

@wishlist_router.delete('/{wishlist_id}', response_model=MessageResponse)
def remove_from_wishlist(wishlist_id: str = Path(...), db: Database = Depends(get_db),
                         user_data: UserData = Depends(authenticate)):
    return WishlistActionsHandler(db, user_data).remove(wishlist_id)


api_router = APIRouter(prefix=settings.App.API_PREFIX)
for router in (auth_router, user_router, property_router, offer_router,
               payment_router, review_router, wishlist_router):
    api_router.include_router(router)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.App.PORT)
