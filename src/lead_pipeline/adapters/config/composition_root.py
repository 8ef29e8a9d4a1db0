from dependency_injector import containers, providers

container = None


def _build_calendar_exporter(url: str | None, token: str | None, timeout: float | None):
    from lead_pipeline.adapters.integrations.calendar_exporter import (
        HttpCalendarExporter,
        NullCalendarExporter,
    )
    if not url:
        return NullCalendarExporter()
    return HttpCalendarExporter(base_url=url, token=token, timeout=timeout)


def setup_di_container_from_settings(settings):  # noqa: PLR0915
    """Inicializa o DI container após o Django já estar com settings carregados."""
    global container  # noqa: PLW0603
    if container is not None:
        import structlog
        structlog.get_logger().debug("DI container já inicializado.")
        return container

    # ------- IMPORTS DE INFRA E ADAPTERS -------
    import structlog

    from lead_pipeline.adapters.integrations.calendar_exporter import AppointmentCalendarMirror
    from lead_pipeline.adapters.integrations.outbound_dialer import OutboundDialerClient
    from lead_pipeline.adapters.observability.stage_recorder import StageTransitionRecorder

    # Repositórios concretos (Django ORM)
    from lead_pipeline.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
    from lead_pipeline.adapters.repositories.audit_log_repo_impl import AuditLogRepoImpl
    from lead_pipeline.adapters.repositories.busy_block_repo_impl import BusyBlockRepoImpl
    from lead_pipeline.adapters.repositories.calendar_event_repo_impl import CalendarEventRepoImpl
    from lead_pipeline.adapters.repositories.call_repo_impl import CallRepoImpl
    from lead_pipeline.adapters.repositories.clinic_repo_impl import ClinicRepoImpl
    from lead_pipeline.adapters.repositories.current_call_repo_impl import CurrentCallRepoImpl
    from lead_pipeline.adapters.repositories.lead_repo_impl import LeadRepoImpl
    from lead_pipeline.adapters.repositories.lead_stage_repo_impl import (
        LeadStageCatalogRepoImpl,
        LeadStageHistoryRepoImpl,
    )
    from lead_pipeline.adapters.repositories.pending_action_repo_impl import PendingActionRepoImpl
    from lead_pipeline.adapters.repositories.stage_transitioner_impl import DjangoStageTransitioner

    # ------- IMPORTS DO CORE DE LEAD_PIPELINE -------
    # Commands
    from lead_pipeline.core.application.commands.agenda_commands import (
        CancelAppointmentCommand,
        CreateAppointmentCommand,
        CreateBusyBlockCommand,
        DeleteBusyBlockCommand,
        MoveBusyBlockCommand,
        RescheduleAppointmentCommand,
    )
    from lead_pipeline.core.application.commands.call_commands import (
        RegisterCallEndedCommand,
        RegisterCallStartedCommand,
    )
    from lead_pipeline.core.application.commands.lead_commands import (
        RecordLeadOutcomeCommand,
        RegisterLeadCommand,
        SetWhatsappBlockCommand,
        TransitionLeadStageCommand,
    )
    from lead_pipeline.core.application.commands.pending_action_commands import (
        DispatchDuePendingActionsCommand,
        MarkPendingActionDoneCommand,
    )

    # CQRS
    from lead_pipeline.core.application.cqrs import CommandBusImpl, QueryBusImpl

    # Handlers
    from lead_pipeline.core.application.handlers import (
        CancelAppointmentHandler,
        CheckSlotAvailabilityHandler,
        CreateAppointmentHandler,
        CreateBusyBlockHandler,
        DeleteBusyBlockHandler,
        DispatchDuePendingActionsHandler,
        GetCurrentCallHandler,
        GetLeadHandler,
        ListAppointmentsHandler,
        ListBusyBlocksHandler,
        ListLeadsHandler,
        ListLeadStageHistoryHandler,
        ListLeadStagesHandler,
        ListPendingActionsHandler,
        MarkPendingActionDoneHandler,
        MoveBusyBlockHandler,
        RecordLeadOutcomeHandler,
        RegisterCallEndedHandler,
        RegisterCallStartedHandler,
        RegisterLeadHandler,
        RescheduleAppointmentHandler,
        SetWhatsappBlockHandler,
        TransitionLeadStageHandler,
    )

    # Queries
    from lead_pipeline.core.application.queries.agenda_queries import (
        CheckSlotAvailabilityQuery,
        ListAppointmentsQuery,
        ListBusyBlocksQuery,
    )
    from lead_pipeline.core.application.queries.call_queries import GetCurrentCallQuery
    from lead_pipeline.core.application.queries.lead_queries import (
        GetLeadQuery,
        ListLeadsQuery,
        ListLeadStageHistoryQuery,
        ListLeadStagesQuery,
    )
    from lead_pipeline.core.application.queries.pending_action_queries import ListPendingActionsQuery

    # Serviços de aplicação
    from lead_pipeline.core.application.services.availability_service import AvailabilityService
    from lead_pipeline.core.application.services.booking_service import BookingService
    from lead_pipeline.core.application.services.busy_block_service import BusyBlockService
    from lead_pipeline.core.application.services.call_service import CallLifecycleService
    from lead_pipeline.core.application.services.lead_outcome_service import LeadOutcomeService
    from lead_pipeline.core.application.services.lead_service import LeadService
    from lead_pipeline.core.application.services.lead_stage_engine import LeadStageEngine
    from lead_pipeline.core.application.services.stage_catalog_service import StageCatalogService

    # Eventos
    from lead_pipeline.core.domain.events.events import (
        AppointmentBookedEvent,
        LeadStageChangedEvent,
        PendingActionDueEvent,
    )
    from lead_pipeline.core.domain.services.event_dispatcher import EventDispatcher

    # ------- DECLARAÇÃO DO CONTAINER -------
    class Container(containers.DeclarativeContainer):
        config = providers.Configuration()

        # Infra & integração
        logger = providers.Singleton(structlog.get_logger)
        event_dispatcher = providers.Singleton(EventDispatcher)

        # CQRS
        command_bus = providers.Singleton(CommandBusImpl, dispatcher=event_dispatcher)
        query_bus = providers.Singleton(QueryBusImpl)

        # Implementações de Repositórios (Ports → Adapters)
        clinic_repo = providers.Singleton(ClinicRepoImpl)
        lead_repo = providers.Singleton(LeadRepoImpl)
        lead_stage_catalog_repo = providers.Singleton(LeadStageCatalogRepoImpl)
        lead_stage_history_repo = providers.Singleton(LeadStageHistoryRepoImpl)
        call_repo = providers.Singleton(CallRepoImpl)
        appointment_repo = providers.Singleton(AppointmentRepoImpl)
        busy_block_repo = providers.Singleton(BusyBlockRepoImpl)
        calendar_event_repo = providers.Singleton(CalendarEventRepoImpl)
        pending_action_repo = providers.Singleton(PendingActionRepoImpl)
        audit_log_repo = providers.Singleton(AuditLogRepoImpl)
        current_call_repo = providers.Singleton(CurrentCallRepoImpl)

        # Funil de leads
        stage_catalog_service = providers.Singleton(StageCatalogService, repo=lead_stage_catalog_repo)
        stage_transitioner = providers.Singleton(
            DjangoStageTransitioner,
            catalog_service=stage_catalog_service,
            max_tries=config.stage_transition_max_tries,
        )
        lead_stage_engine = providers.Singleton(
            LeadStageEngine,
            transitioner=stage_transitioner,
            lead_repo=lead_repo,
            pending_action_repo=pending_action_repo,
            catalog_service=stage_catalog_service,
            dispatcher=event_dispatcher,
        )
        lead_service = providers.Singleton(
            LeadService,
            lead_repo=lead_repo,
            audit_repo=audit_log_repo,
            phone_region=config.phone_region,
            phone_digits=config.phone_digits,
        )
        lead_outcome_service = providers.Singleton(
            LeadOutcomeService,
            engine=lead_stage_engine,
            lead_repo=lead_repo,
            audit_repo=audit_log_repo,
        )
        call_service = providers.Singleton(
            CallLifecycleService,
            call_repo=call_repo,
            lead_repo=lead_repo,
            pending_action_repo=pending_action_repo,
            current_call_repo=current_call_repo,
            engine=lead_stage_engine,
            cost_per_minute_eur=config.cost_per_minute_eur,
        )

        # Agenda
        availability_service = providers.Singleton(
            AvailabilityService,
            appointment_repo=appointment_repo,
            busy_block_repo=busy_block_repo,
            calendar_event_repo=calendar_event_repo,
        )
        booking_service = providers.Singleton(
            BookingService,
            appointment_repo=appointment_repo,
            lead_repo=lead_repo,
            lead_service=lead_service,
            availability=availability_service,
            engine=lead_stage_engine,
            dispatcher=event_dispatcher,
        )
        busy_block_service = providers.Singleton(
            BusyBlockService, repo=busy_block_repo, availability=availability_service
        )

        # Colaboradores externos
        calendar_exporter = providers.Singleton(
            _build_calendar_exporter,
            url=config.calendar.url,
            token=config.calendar.token,
            timeout=config.calendar.timeout,
        )
        appointment_calendar_mirror = providers.Singleton(
            AppointmentCalendarMirror, exporter=calendar_exporter, appointment_repo=appointment_repo
        )
        outbound_dialer = providers.Singleton(
            OutboundDialerClient, base_url=config.dialer.url, token=config.dialer.token
        )
        stage_transition_recorder = providers.Singleton(StageTransitionRecorder)

        # Handlers de comandos
        transition_lead_stage_handler = providers.Factory(
            TransitionLeadStageHandler, engine=lead_stage_engine, lead_repo=lead_repo
        )
        record_lead_outcome_handler = providers.Factory(
            RecordLeadOutcomeHandler, outcome_service=lead_outcome_service
        )
        register_lead_handler = providers.Factory(RegisterLeadHandler, lead_service=lead_service)
        set_whatsapp_block_handler = providers.Factory(SetWhatsappBlockHandler, lead_service=lead_service)
        register_call_started_handler = providers.Factory(RegisterCallStartedHandler, call_service=call_service)
        register_call_ended_handler = providers.Factory(RegisterCallEndedHandler, call_service=call_service)
        create_appointment_handler = providers.Factory(CreateAppointmentHandler, booking_service=booking_service)
        reschedule_appointment_handler = providers.Factory(
            RescheduleAppointmentHandler, booking_service=booking_service
        )
        cancel_appointment_handler = providers.Factory(CancelAppointmentHandler, booking_service=booking_service)
        create_busy_block_handler = providers.Factory(CreateBusyBlockHandler, busy_block_service=busy_block_service)
        move_busy_block_handler = providers.Factory(MoveBusyBlockHandler, busy_block_service=busy_block_service)
        delete_busy_block_handler = providers.Factory(DeleteBusyBlockHandler, busy_block_service=busy_block_service)
        dispatch_due_pending_actions_handler = providers.Factory(
            DispatchDuePendingActionsHandler, pending_action_repo=pending_action_repo
        )
        mark_pending_action_done_handler = providers.Factory(
            MarkPendingActionDoneHandler, pending_action_repo=pending_action_repo
        )

        # Handlers de queries
        list_leads_handler = providers.Factory(ListLeadsHandler, lead_repo=lead_repo)
        get_lead_handler = providers.Factory(GetLeadHandler, lead_repo=lead_repo)
        list_lead_stage_history_handler = providers.Factory(
            ListLeadStageHistoryHandler, lead_repo=lead_repo, history_repo=lead_stage_history_repo
        )
        list_lead_stages_handler = providers.Factory(ListLeadStagesHandler, catalog_service=stage_catalog_service)
        check_slot_availability_handler = providers.Factory(
            CheckSlotAvailabilityHandler, availability=availability_service
        )
        list_appointments_handler = providers.Factory(ListAppointmentsHandler, appointment_repo=appointment_repo)
        list_busy_blocks_handler = providers.Factory(ListBusyBlocksHandler, busy_block_repo=busy_block_repo)
        list_pending_actions_handler = providers.Factory(
            ListPendingActionsHandler, pending_action_repo=pending_action_repo
        )
        get_current_call_handler = providers.Factory(GetCurrentCallHandler, current_call_repo=current_call_repo)

        def init(self):
            # Registrar comandos no CommandBus
            bus = self.command_bus()

            # Funil
            bus.register(TransitionLeadStageCommand, self.transition_lead_stage_handler())
            bus.register(RecordLeadOutcomeCommand, self.record_lead_outcome_handler())
            bus.register(RegisterLeadCommand, self.register_lead_handler())
            bus.register(SetWhatsappBlockCommand, self.set_whatsapp_block_handler())

            # Ligações
            bus.register(RegisterCallStartedCommand, self.register_call_started_handler())
            bus.register(RegisterCallEndedCommand, self.register_call_ended_handler())

            # Agenda
            bus.register(CreateAppointmentCommand, self.create_appointment_handler())
            bus.register(RescheduleAppointmentCommand, self.reschedule_appointment_handler())
            bus.register(CancelAppointmentCommand, self.cancel_appointment_handler())
            bus.register(CreateBusyBlockCommand, self.create_busy_block_handler())
            bus.register(MoveBusyBlockCommand, self.move_busy_block_handler())
            bus.register(DeleteBusyBlockCommand, self.delete_busy_block_handler())

            # Ações pendentes
            bus.register(DispatchDuePendingActionsCommand, self.dispatch_due_pending_actions_handler())
            bus.register(MarkPendingActionDoneCommand, self.mark_pending_action_done_handler())

            # Registrar queries no QueryBus
            qb = self.query_bus()
            qb.register(ListLeadsQuery, self.list_leads_handler())
            qb.register(GetLeadQuery, self.get_lead_handler())
            qb.register(ListLeadStageHistoryQuery, self.list_lead_stage_history_handler())
            qb.register(ListLeadStagesQuery, self.list_lead_stages_handler())
            qb.register(CheckSlotAvailabilityQuery, self.check_slot_availability_handler())
            qb.register(ListAppointmentsQuery, self.list_appointments_handler())
            qb.register(ListBusyBlocksQuery, self.list_busy_blocks_handler())
            qb.register(ListPendingActionsQuery, self.list_pending_actions_handler())
            qb.register(GetCurrentCallQuery, self.get_current_call_handler())

            # Assinantes de eventos de domínio
            dispatcher = self.event_dispatcher()
            dispatcher.subscribe(AppointmentBookedEvent, self.appointment_calendar_mirror())
            dispatcher.subscribe(PendingActionDueEvent, self.outbound_dialer())
            dispatcher.subscribe(LeadStageChangedEvent, self.stage_transition_recorder())

    # ------- INSTANCIAÇÃO E CONFIG -------
    container = Container()
    container.config.stage_transition_max_tries.from_value(settings.STAGE_TRANSITION_MAX_TRIES)
    container.config.phone_region.from_value(settings.CLINIC_PHONE_REGION)
    container.config.phone_digits.from_value(settings.CLINIC_PHONE_NATIONAL_DIGITS)
    container.config.cost_per_minute_eur.from_value(settings.CALL_COST_PER_MINUTE_EUR)
    container.config.calendar.url.from_value(settings.CALENDAR_EXPORT_URL)
    container.config.calendar.token.from_value(settings.CALENDAR_EXPORT_TOKEN)
    container.config.calendar.timeout.from_value(settings.CALENDAR_EXPORT_TIMEOUT)
    container.config.dialer.url.from_value(settings.OUTBOUND_DIALER_URL)
    container.config.dialer.token.from_value(settings.OUTBOUND_DIALER_TOKEN)

    # Inicializa os buses com todos os handlers
    Container.init(container)
    return container
