class ApplicationContext:
    """
    Centralized application context that provides access to the ledger
    database manager, the ledger services and the state manager. This class
    serves as a dependency injection container for commands and the API.
    """

    def __init__(self, state_manager):
        """
        Initialize the application context with the required dependencies.

        Args:
            state_manager: State instance holding the configuration dictionary
        """
        if state_manager is None:
            raise ValueError("state_manager is REQUIRED")

        self._config = state_manager.config
        self._state_manager = state_manager
        self._ledger_db_manager = None
        self._lifecycle_service = None
        self._aggregation_service = None
        self._quote_service = None

    @property
    def state_manager(self):
        """
        Get the state manager instance.

        Returns:
            The state manager instance
        """
        return self._state_manager

    @property
    def config(self):
        """
        Get the configuration dictionary.

        Returns:
            The configuration dictionary
        """
        return self._config

    @property
    def ledger_db_manager(self):
        """
        Get the ledger database manager instance.

        Returns:
            The ledger database manager instance
        """
        return self._ledger_db_manager

    @ledger_db_manager.setter
    def ledger_db_manager(self, ledger_db_manager):
        """
        Set the ledger database manager instance.

        Args:
            ledger_db_manager: The ledger database manager instance to set
        """
        self._ledger_db_manager = ledger_db_manager

    @property
    def lifecycle_service(self):
        """
        Get the lifecycle service instance.

        Returns:
            The lifecycle service instance
        """
        return self._lifecycle_service

    @lifecycle_service.setter
    def lifecycle_service(self, lifecycle_service):
        """
        Set the lifecycle service instance.

        Args:
            lifecycle_service: The lifecycle service instance to set
        """
        self._lifecycle_service = lifecycle_service

    @property
    def aggregation_service(self):
        """
        Get the aggregation service instance.

        Returns:
            The aggregation service instance
        """
        return self._aggregation_service

    @aggregation_service.setter
    def aggregation_service(self, aggregation_service):
        """
        Set the aggregation service instance.

        Args:
            aggregation_service: The aggregation service instance to set
        """
        self._aggregation_service = aggregation_service

    @property
    def quote_service(self):
        """
        Get the quote service instance.

        Returns:
            The quote service instance
        """
        return self._quote_service

    @quote_service.setter
    def quote_service(self, quote_service):
        """
        Set the quote service instance.

        Args:
            quote_service: The quote service instance to set
        """
        self._quote_service = quote_service

