from localmarket.models.user import User
from localmarket.models.auth_token import PasswordResetToken, RefreshToken
from localmarket.models.profile import Profile
from localmarket.models.business import Business
from localmarket.models.business_member import BusinessMember
from localmarket.models.business_invite import BusinessInvite
from localmarket.models.vendor import Vendor, VendorLocation
from localmarket.models.event import Event, EventVendor
from localmarket.models.product import EventProduct, Product, ProductInterest
from localmarket.models.audit_log import AuditLog
