from backoffice.models.base import MongoModel, ApiModel
from backoffice.models.expense import Expense, ExpenseStatus, Priority, Requester, ExpenseSummary, ExpenseQuery, ExpensePage, CreateExpensePayload, UpdateExpensePayload
from backoffice.models.audit import AuditEvent, Actor, ActionType, AuditLog, AuditLogPage
from backoffice.models.access import AccessState, AppUser, Role, UserStatus
from backoffice.models.approval import ApprovalRequest, ApprovalAction
