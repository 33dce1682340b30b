from keyledger.db.repo.admin_credentials_repo import AdminCredentialsRepo
from keyledger.db.repo.codes_repo import CodesRepo
from keyledger.db.repo.prompt_history_repo import PromptHistoryRepo
from keyledger.db.repo.purchases_repo import PurchasesRepo
from keyledger.db.repo.users_repo import UsersRepo
