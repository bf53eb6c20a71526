from cassandra_healthcheck.cli import main

main()
