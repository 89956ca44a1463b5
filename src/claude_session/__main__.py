from claude_session.cli import main

main()
