"""
Test Package
============

Unit and integration tests for the Phone Agent.

Test organization:
    - test_tree_compressor.py: Accessibility tree compression tests
    - test_command_channel.py: Command polling, Supabase store and catalog tests
    - test_response_parser.py: Decision parsing, prompts and oracle tests
    - test_actions.py: Action executor tests
    - test_automation_loop.py: Observe-decide-act loop and runner tests
    - test_groq_client.py: Groq client tests
    - test_api.py: FastAPI route tests
    - test_logger.py: Logging processor and context tests
"""
