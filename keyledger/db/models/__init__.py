from keyledger.db.models.admin_credentials import AdminCredential
from keyledger.db.models.prompt_history import PromptHistoryEntry
from keyledger.db.models.purchases import Purchase
from keyledger.db.models.redeemable_codes import RedeemableCode
from keyledger.db.models.users import User
