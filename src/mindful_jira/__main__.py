from mindful_jira.cli import main

main()
