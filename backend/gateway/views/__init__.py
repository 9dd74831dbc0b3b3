from gateway.views.auth_handlers import (
    check_auth as check_auth,
)
from gateway.views.auth_handlers import (
    login as login,
)
from gateway.views.auth_handlers import (
    logout as logout,
)
from gateway.views.auth_handlers import (
    register as register,
)
from gateway.views.profile_handlers import (
    update_profile as update_profile,
)
