from company_enrichment.cli import main

main()
