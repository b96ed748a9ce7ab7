from adexpress.models.advertisement import Advertisement
from adexpress.models.saved_search import SavedSearch
from adexpress.models.statistic import Statistic
from adexpress.models.user import User
