from .agenda_handlers import (  # noqa
  CancelAppointmentHandler,
  CheckSlotAvailabilityHandler,
  CreateAppointmentHandler,
  CreateBusyBlockHandler,
  DeleteBusyBlockHandler,
  ListAppointmentsHandler,
  ListBusyBlocksHandler,
  MoveBusyBlockHandler,
  RescheduleAppointmentHandler,
)
from .call_handlers import (  # noqa
  GetCurrentCallHandler,
  RegisterCallEndedHandler,
  RegisterCallStartedHandler,
)
from .lead_handlers import (  # noqa
  GetLeadHandler,
  ListLeadsHandler,
  ListLeadStageHistoryHandler,
  ListLeadStagesHandler,
  RecordLeadOutcomeHandler,
  RegisterLeadHandler,
  SetWhatsappBlockHandler,
  TransitionLeadStageHandler,
)
from .pending_action_handlers import (  # noqa
  DispatchDuePendingActionsHandler,
  ListPendingActionsHandler,
  MarkPendingActionDoneHandler,
)
