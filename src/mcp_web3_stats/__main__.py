from mcp_web3_stats.cli import main

if __name__ == "__main__":
    main()
